"""
Upload storage.

- Files are stored under UPLOAD_DIR/{category}/{owner_id}/
- Naming: {uuid15}_{original_filename}
- Paths saved on records are relative to UPLOAD_DIR
"""
import logging
import os
import uuid

from accredit.core.config import settings
from accredit.core.exceptions import StorageError

logger = logging.getLogger(__name__)


def ensure_upload_dir(category: str, owner_id: str) -> str:
    target_dir = os.path.join(settings.UPLOAD_DIR, category, owner_id)
    os.makedirs(target_dir, exist_ok=True)
    return target_dir


def absolute_path(rel_path: str) -> str:
    return os.path.join(settings.UPLOAD_DIR, rel_path)


def save_file(category: str, owner_id: str, original_name: str, content: bytes) -> str:
    """Write ``content`` and return its path relative to UPLOAD_DIR."""
    target_dir = ensure_upload_dir(category, owner_id)
    safe_name = os.path.basename(original_name) or "uploaded_file"
    stored_path = os.path.join(target_dir, f"{uuid.uuid4().hex[:15]}_{safe_name}")
    try:
        with open(stored_path, "wb") as f:
            f.write(content)
    except OSError as e:
        raise StorageError(f"Failed to store file: {e}")
    return os.path.relpath(stored_path, settings.UPLOAD_DIR)


def delete_file(rel_path: str) -> bool:
    """Remove a stored file. A missing file counts as removed."""
    abs_path = absolute_path(rel_path)
    try:
        if os.path.exists(abs_path):
            os.remove(abs_path)
        return True
    except OSError as e:
        logger.warning("Could not remove %s: %s", abs_path, e)
        return False


def file_exists(rel_path: str) -> bool:
    return os.path.exists(absolute_path(rel_path))

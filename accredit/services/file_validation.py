"""
Upload validation.

Extension, size and content type are checked independently so callers can
report exactly what was wrong. The content type is sniffed from the file
signature; the client-supplied header is not trusted.
"""
import io
import os
import zipfile
from dataclasses import dataclass
from typing import Optional

from accredit.core.config import settings
from accredit.core.exceptions import InvalidInputError

PDF = "application/pdf"
MSWORD = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
JPEG = "image/jpeg"
PNG = "image/png"

_OLE_SIGNATURE = bytes.fromhex("D0CF11E0A1B11AE1")
_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lstrip(".").lower()


@dataclass(frozen=True)
class FileProfile:
    extensions: frozenset[str]
    mime_types: frozenset[str]
    max_size: int
    extension_message: str
    size_message: str
    mime_message: str


@dataclass(frozen=True)
class FileCheck:
    extension_ok: bool
    mime_ok: bool
    size_ok: bool

    @property
    def ok(self) -> bool:
        return self.extension_ok and self.mime_ok and self.size_ok


DOCUMENT_PROFILE = FileProfile(
    extensions=frozenset({"pdf", "doc", "docx"}),
    mime_types=frozenset({PDF, MSWORD, DOCX}),
    max_size=settings.MAX_DOCUMENT_SIZE,
    extension_message="Invalid file type. Please upload PDF, DOC, or DOCX files.",
    size_message="File size exceeds 10MB limit. Please upload a smaller file.",
    mime_message="Invalid file type detected",
)

PICTURE_PROFILE = FileProfile(
    extensions=frozenset({"jpg", "jpeg", "png"}),
    mime_types=frozenset({JPEG, PNG}),
    max_size=settings.MAX_PICTURE_SIZE,
    extension_message="Invalid image or file too large (max 5MB).",
    size_message="Invalid image or file too large (max 5MB).",
    mime_message="Invalid image or file too large (max 5MB).",
)


def sniff_mime(content: bytes) -> Optional[str]:
    """Best-effort content type from the leading bytes."""
    if content.startswith(b"%PDF-"):
        return PDF
    if content.startswith(_OLE_SIGNATURE):
        return MSWORD
    if content.startswith(b"\xff\xd8\xff"):
        return JPEG
    if content.startswith(_PNG_SIGNATURE):
        return PNG
    if content.startswith(b"PK\x03\x04"):
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as archive:
                if "word/document.xml" in archive.namelist():
                    return DOCX
        except zipfile.BadZipFile:
            return None
    return None


def check(file: IncomingFile, profile: FileProfile) -> FileCheck:
    return FileCheck(
        extension_ok=file.extension in profile.extensions,
        mime_ok=sniff_mime(file.content) in profile.mime_types,
        size_ok=0 < file.size <= profile.max_size,
    )


def ensure_valid(file: IncomingFile, profile: FileProfile) -> None:
    """Raise InvalidInputError for the first failing check."""
    result = check(file, profile)
    if not result.extension_ok:
        raise InvalidInputError(profile.extension_message, code="INVALID_FILE_TYPE")
    if not result.size_ok:
        raise InvalidInputError(profile.size_message, code="FILE_TOO_LARGE")
    if not result.mime_ok:
        raise InvalidInputError(profile.mime_message, code="INVALID_FILE_CONTENT")

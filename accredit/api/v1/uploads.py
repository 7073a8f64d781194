"""
Shared helpers for endpoints that accept file uploads.
"""
from fastapi import UploadFile

from accredit.services.file_validation import IncomingFile


async def read_upload(upload: UploadFile) -> IncomingFile:
    content = await upload.read()
    return IncomingFile(
        filename=upload.filename or "uploaded_file",
        content=content,
        content_type=upload.content_type,
    )

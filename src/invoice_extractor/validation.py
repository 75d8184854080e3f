"""Precondition checks applied before a document is sent anywhere."""

from __future__ import annotations

from pathlib import PurePath

from invoice_extractor import constants
from invoice_extractor.exceptions import InvalidInputError


def require_document(content: bytes | None, file_name: str | None) -> None:
    """Fail fast on an empty document or a blank file name."""
    if not content:
        raise InvalidInputError("document content is empty")
    if not isinstance(file_name, str) or not file_name.strip():
        raise InvalidInputError("file name is empty")


def validate_upload(
    file_name: str,
    size: int,
    content_type: str | None = None,
    *,
    max_size: int = constants.MAX_UPLOAD_SIZE,
) -> None:
    """Apply the upload allow-list: size, extension and declared MIME type.

    The content itself is not inspected.

    Raises:
        InvalidInputError: With a reason suitable for showing to a user.
    """
    if size <= 0:
        raise InvalidInputError("no file provided or file is empty")
    if size > max_size:
        raise InvalidInputError(
            f"file size too large. Maximum allowed: {max_size // (1024 * 1024)}MB"
        )

    if content_type is not None and content_type not in constants.ALLOWED_CONTENT_TYPES:
        raise InvalidInputError(
            f"unsupported file type: {content_type}. "
            "Allowed types: PDF, JPG, PNG, XLSX, XLS"
        )

    extension = PurePath(file_name).suffix.lower()
    if extension not in constants.ALLOWED_EXTENSIONS:
        raise InvalidInputError(
            f"unsupported file extension: {extension or '<none>'}. "
            f"Allowed: {', '.join(constants.ALLOWED_EXTENSIONS)}"
        )

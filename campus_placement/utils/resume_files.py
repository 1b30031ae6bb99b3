"""
Resume File Utility - File name checks for resume uploads.

The engine stores only metadata and an opaque file reference; the
bytes live wherever the upload transport put them.

Supported formats (configurable via RESUME_EXTENSIONS):
- PDF (.pdf)
- Word (.docx)
- Plain Text (.txt)
"""

from campus_placement.core.config import get_settings
from campus_placement.core.errors import ValidationFailedError


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def validate_resume_file_name(filename: str) -> str:
    """
    Check the file name carries an allowed extension.

    Returns:
        The lowercase extension

    Raises:
        ValidationFailedError on a missing or unsupported extension
    """
    allowed = get_settings().resume_extensions
    if not filename or not filename.strip():
        raise ValidationFailedError("No filename provided")

    ext = get_file_extension(filename.strip())
    if ext not in allowed:
        names = ", ".join(e.lstrip(".").upper() for e in allowed)
        raise ValidationFailedError(f"Unsupported file type '{ext}'. Allowed: {names}")
    return ext

"""
Validation of uploaded files before they reach object storage.

Every check returns ``(is_valid, error_message)`` so callers can either reject
the request (profile pictures) or skip the file and continue (case evidence).
"""
import re
import logging
from typing import BinaryIO, Optional, Set, Tuple

from cemse_backend.storage_config import (
    DANGEROUS_SIGNATURES,
    MAX_PROFILE_PICTURE_SIZE,
    PROFILE_PICTURE_MIME_TYPES,
    format_bytes
)
from cemse_backend.api.exceptions import BadRequestException

logger = logging.getLogger(__name__)

UNNAMED_FILE = "unnamed_file"
MAX_STEM_LENGTH = 100
SIGNATURE_HEADER_SIZE = 256

_unsafe_chars = re.compile(r'[^\w\s.-]', re.UNICODE)
_whitespace = re.compile(r'\s+')

CheckResult = Tuple[bool, Optional[str]]


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Reduce a client supplied filename to a safe last path component.

    Directory parts (either separator) are dropped, hidden-file dots are
    neutralised, characters outside word/space/dot/dash are removed and
    whitespace becomes underscores. The stem is capped at 100 characters,
    the extension is kept.
    """
    base = (filename or '').replace('\\', '/').rsplit('/', 1)[-1]

    if base.startswith('.'):
        base = '_' + base.lstrip('.')

    base = _whitespace.sub('_', _unsafe_chars.sub('', base)).strip('. ')

    stem, dot, extension = base.rpartition('.')
    if not dot:
        stem, extension = base, ''
    base = f"{stem[:MAX_STEM_LENGTH]}{dot}{extension}"

    if not base.strip('_'):
        return UNNAMED_FILE
    return base


def file_extension(filename: Optional[str], default: str = "bin") -> str:
    sanitized = sanitize_filename(filename)
    if '.' not in sanitized:
        return default
    return sanitized.rsplit('.', 1)[1].lower() or default


def normalize_content_type(content_type: Optional[str]) -> str:
    return (content_type or '').split(';')[0].strip().lower()


def validate_content_type(content_type: Optional[str], allowed: Set[str]) -> CheckResult:
    normalized = normalize_content_type(content_type)

    if normalized not in allowed:
        return False, f"Content type '{normalized or 'unknown'}' is not allowed"

    return True, None


def validate_file_size(file_size: int, max_size: int) -> CheckResult:
    if file_size == 0:
        return False, "Empty files are not allowed"

    if file_size > max_size:
        return False, f"File size {format_bytes(file_size)} exceeds maximum allowed size of {format_bytes(max_size)}"

    return True, None


def check_file_content_security(file_data: BinaryIO) -> CheckResult:
    """Reject executables whatever content type they were uploaded with."""
    file_data.seek(0)
    header = file_data.read(SIGNATURE_HEADER_SIZE)
    file_data.seek(0)

    for signature, description in DANGEROUS_SIGNATURES.items():
        if header.startswith(signature):
            return False, f"File type not allowed: {description}"

    return True, None


def validate_upload(
    content_type: Optional[str],
    file_size: int,
    file_data: BinaryIO,
    allowed_types: Set[str],
    max_size: int
) -> CheckResult:
    """Run every check in order and return the first failure."""

    for valid, error in (
        validate_content_type(content_type, allowed_types),
        validate_file_size(file_size, max_size),
    ):
        if not valid:
            return valid, error

    return check_file_content_security(file_data)


def perform_full_file_validation(
    filename: str,
    content_type: Optional[str],
    file_size: int,
    file_data: BinaryIO,
    allowed_types: Set[str] = PROFILE_PICTURE_MIME_TYPES,
    max_size: int = MAX_PROFILE_PICTURE_SIZE
) -> None:
    """Like validate_upload, but raises BadRequestException on the first failure."""
    valid, error = validate_upload(content_type, file_size, file_data, allowed_types, max_size)
    if not valid:
        raise BadRequestException(error)

    logger.debug(f"Upload {filename} accepted ({format_bytes(file_size)})")

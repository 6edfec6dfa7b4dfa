"""Validation utilities for common data types."""

import re
from typing import Optional
from email_validator import validate_email as _validate_email, EmailNotValidError

from core.config import settings
from core.exceptions import ValidationError


PDF_MAGIC = b"%PDF-"


def validate_email(email: str) -> tuple[bool, Optional[str]]:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, normalized_email or error_message)
    """
    try:
        validation = _validate_email(email, check_deliverability=False)
        return True, validation.normalized
    except EmailNotValidError as e:
        return False, str(e)


def validate_url(url: str) -> tuple[bool, Optional[str]]:
    """
    Validate URL format.

    Args:
        url: URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url:
        return False, "URL is required"

    url_pattern = re.compile(
        r'^https?://'  # http:// or https://
        r'(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,6}\.?|'  # domain...
        r'localhost|'  # localhost...
        r'\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})'  # ...or ip
        r'(?::\d+)?'  # optional port
        r'(?:/?|[/?]\S+)$', re.IGNORECASE
    )

    if not url_pattern.match(url):
        return False, "Invalid URL format"

    return True, None


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename by removing dangerous characters.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    # Drop any client-supplied directory part
    filename = re.split(r'[/\\]', filename)[-1]

    sanitized = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '', filename)
    sanitized = sanitized.replace(' ', '_')

    if len(sanitized) > 255:
        name, ext = sanitized.rsplit('.', 1) if '.' in sanitized else (sanitized, '')
        sanitized = name[:250] + ('.' + ext if ext else '')

    return sanitized or "file"


def normalize_phone_number(phone: str, country_code: Optional[str] = None) -> str:
    """
    Normalize a phone number to country-coded digits (e.g. 628123456789).

    Non-digits are stripped. A number typed with a leading ``+`` already
    carries its country code and is kept as is; otherwise a leading trunk
    ``0`` is replaced by the country code, and numbers without the country
    code get it prepended.

    Args:
        phone: Phone number as typed by the user
        country_code: Country calling code, defaults to settings

    Returns:
        Canonical digit string

    Raises:
        ValidationError: If the result is not 8-15 digits long
    """
    country_code = country_code or settings.default_country_code
    digits = re.sub(r'\D', '', phone or '')

    if not digits:
        raise ValidationError("Phone number is required")

    international = (phone or '').strip().startswith('+')

    if not international:
        if digits.startswith('0'):
            digits = country_code + digits[1:]
        elif not digits.startswith(country_code):
            digits = country_code + digits

    if len(digits) < 8 or len(digits) > 15:
        raise ValidationError("Phone number must be between 8 and 15 digits")

    return digits


def validate_resume(filename: str, content_type: Optional[str], data: bytes) -> None:
    """
    Check an uploaded résumé against the allowed types and size limit.

    Args:
        filename: Original filename
        content_type: Declared MIME type
        data: File contents

    Raises:
        ValidationError: If the file is missing, too large or not a PDF
    """
    if not data:
        raise ValidationError("Resume file is required")

    if len(data) > settings.resume_max_bytes:
        limit_mb = settings.resume_max_bytes // (1024 * 1024)
        raise ValidationError(f"Resume must be at most {limit_mb}MB")

    if content_type not in settings.resume_allowed_content_types:
        raise ValidationError("Resume must be a PDF file")

    if not filename.lower().endswith(".pdf") or not data.startswith(PDF_MAGIC):
        raise ValidationError("Resume must be a PDF file")

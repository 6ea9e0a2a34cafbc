# core/enquiry.py
"""
Contact form validation and sanitization

Turns a raw form mapping into an Enquiry. Free text is stripped of markup and
HTML-escaped; the email address is validated syntactically (no DNS lookups).
"""

import re
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import bleach
from email_validator import validate_email, EmailNotValidError

from core.errors import ValidationError

logger = logging.getLogger(__name__)


REQUIRED_FIELDS = ('name', 'email', 'country', 'message')
COMPANY_PLACEHOLDER = 'Not provided'

MAX_LENGTHS: Dict[str, int] = {
    'name': 200,
    'email': 254,
    'company': 200,
    'country': 100,
    'message': 5000,
}

# Single-line fields end up in headers or table cells
_LINE_BREAKS = re.compile(r'[\r\n\t]+')


@dataclass(frozen=True)
class Enquiry:
    """A sanitized contact form submission"""
    name: str
    email: str
    company: str
    country: str
    message: str
    submitted_at: datetime
    source_ip: Optional[str] = None


def field_value(form: Mapping[str, Any], name: str) -> str:
    """
    Read one submitted field as trimmed text

    Absent fields read as ''. Scalars are stringified; nested JSON
    (objects, arrays) is not a form field and is rejected.

    Raises:
        ValidationError: when the value is a dict or a list
    """
    value = form.get(name)
    if value is None:
        return ''
    if isinstance(value, (dict, list, tuple)):
        raise ValidationError('Invalid request body', fields=[name])
    return str(value).strip()


def sanitize_text(value: str, single_line: bool = False) -> str:
    """Strip tags and escape HTML-unsafe characters"""
    if single_line:
        value = _LINE_BREAKS.sub(' ', value)
    cleaned = bleach.clean(value, tags=[], attributes={}, strip=True, strip_comments=True)
    return cleaned.replace('"', '&quot;').replace("'", '&#x27;').strip()


def is_honeypot_tripped(form: Mapping[str, Any], field_name: str = 'website') -> bool:
    """Any non-blank value in the hidden field marks the submission as a bot"""
    try:
        return bool(field_value(form, field_name))
    except ValidationError:
        return True


def parse_enquiry(form: Mapping[str, Any],
                  source_ip: Optional[str] = None,
                  now: Optional[datetime] = None) -> Enquiry:
    """
    Validate a raw submission and build an Enquiry

    Args:
        form: Field name to value mapping (JSON body or form data)
        source_ip: Address the request came from
        now: Receipt time, defaults to the current UTC time

    Returns:
        Sanitized Enquiry

    Raises:
        ValidationError: on missing fields, a bad address or oversized input
    """
    raw = {name: field_value(form, name) for name in MAX_LENGTHS}

    missing = [name for name in REQUIRED_FIELDS if not raw[name]]
    if missing:
        logger.debug(f"Rejected enquiry, missing fields: {missing}")
        raise ValidationError('All required fields must be filled', fields=missing)

    try:
        email = validate_email(raw['email'], check_deliverability=False).normalized
    except EmailNotValidError as e:
        logger.debug(f"Rejected enquiry, bad email address: {e}")
        raise ValidationError('Invalid email format', fields=['email'])

    for name, limit in MAX_LENGTHS.items():
        if len(raw[name]) > limit:
            raise ValidationError(f"{name.capitalize()} is too long", fields=[name])

    company = sanitize_text(raw['company'], single_line=True) or COMPANY_PLACEHOLDER

    enquiry = Enquiry(
        name=sanitize_text(raw['name'], single_line=True),
        email=email,
        company=company,
        country=sanitize_text(raw['country'], single_line=True),
        message=sanitize_text(raw['message']),
        submitted_at=now or datetime.now(timezone.utc),
        source_ip=source_ip,
    )

    # Markup-only input sanitizes down to nothing
    emptied = [name for name in ('name', 'country', 'message') if not getattr(enquiry, name)]
    if emptied:
        raise ValidationError('All required fields must be filled', fields=emptied)

    return enquiry

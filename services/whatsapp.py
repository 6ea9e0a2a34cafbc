# services/whatsapp.py
"""WhatsApp click-to-chat link building for the site's chat widget"""

import re
from typing import Any, Mapping
from urllib.parse import quote

from core.enquiry import field_value
from core.errors import ValidationError

WHATSAPP_BASE_URL = 'https://wa.me'

_NON_DIGITS = re.compile(r'\D+')


def build_whatsapp_link(phone: str, name: str, email: str, message: str) -> str:
    """
    Build a wa.me link that opens a chat pre-filled with the visitor's details

    Raises:
        ValidationError: when name, email or message is blank
    """
    name, email, message = ((v or '').strip() for v in (name, email, message))
    missing = [k for k, v in (('name', name), ('email', email), ('message', message)) if not v]
    if missing:
        raise ValidationError('All required fields must be filled', fields=missing)

    digits = _NON_DIGITS.sub('', phone or '')
    if not digits:
        raise ValueError(f"WhatsApp number {phone!r} contains no digits")

    text = f"Hello, my name is {name}.\nEmail: {email}\nMessage: {message}"
    return f"{WHATSAPP_BASE_URL}/{digits}?text={quote(text, safe='')}"


def link_from_form(phone: str, form: Mapping[str, Any]) -> str:
    """Same field reading rules as the email relay endpoint"""
    name, email, message = (field_value(form, key) for key in ('name', 'email', 'message'))
    return build_whatsapp_link(phone, name, email, message)

# api/contact.py
"""
Contact form API endpoints

Per-IP rate limiting is attached to this blueprint by the application factory,
so limits are enforced before any of these views run.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from flask_limiter.util import get_remote_address

from api.responses import honeypot_response, success_response
from config.settings import Settings
from core.enquiry import is_honeypot_tripped, parse_enquiry
from core.errors import ValidationError
from services.relay import MailTransport
from services.whatsapp import link_from_form

contact_bp = Blueprint('contact', __name__)
logger = logging.getLogger(__name__)

EXTENSION_KEY = 'contact_relay'


@dataclass
class RelayState:
    """Per-application collaborators, stored on app.extensions"""
    settings: Settings
    transport: MailTransport


def relay_state() -> RelayState:
    return current_app.extensions[EXTENSION_KEY]


def read_submission() -> Dict[str, Any]:
    """Accept either a JSON object or a form-encoded body"""
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError('Invalid request body')
        return data
    return request.form.to_dict()


@contact_bp.route('/api/send-email', methods=['POST'])
def send_email():
    """Validate a contact form submission and relay it to the company inbox"""
    state = relay_state()
    source_ip = get_remote_address()
    data = read_submission()

    if is_honeypot_tripped(data, state.settings.honeypot_field):
        logger.warning(f"Honeypot field filled by {source_ip}, discarding submission")
        return honeypot_response()

    enquiry = parse_enquiry(data, source_ip=source_ip)
    message_id = state.transport.send(enquiry)

    logger.info(f"Enquiry relayed via {state.transport.name}: {message_id}")
    logger.info(f"   From: {enquiry.email} ({source_ip})")
    logger.info(f"   To: {state.settings.mail.recipient_email}")

    return success_response(message_id)


@contact_bp.route('/api/whatsapp-link', methods=['POST'])
def whatsapp_link():
    """Build a click-to-chat link pre-filled with the visitor's details"""
    state = relay_state()
    url = link_from_form(state.settings.whatsapp_number, read_submission())
    return jsonify({'success': True, 'url': url})

# api/responses.py
"""
Uniform JSON envelope for every relay outcome

{success: bool, message: str, messageId?: str, error?: str}
"""

from typing import Optional, Tuple

from flask import Response, jsonify

from core.errors import RelayError

SUCCESS_MESSAGE = 'Email sent successfully'


def success_response(message_id: Optional[str]) -> Tuple[Response, int]:
    return jsonify({
        'success': True,
        'message': SUCCESS_MESSAGE,
        'messageId': message_id,
    }), 200


def honeypot_response() -> Tuple[Response, int]:
    """Looks exactly like a real success, minus the provider id"""
    return jsonify({'success': True, 'message': SUCCESS_MESSAGE}), 200


def error_response(error: RelayError, include_detail: bool = False) -> Tuple[Response, int]:
    response = jsonify(error.to_dict(include_detail=include_detail))
    retry_after = getattr(error, 'retry_after', None)
    if retry_after is not None:
        response.headers.setdefault('Retry-After', str(retry_after))
    return response, error.status_code

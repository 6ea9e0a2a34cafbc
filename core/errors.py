# core/errors.py
"""
Exception hierarchy for the contact relay

Every error that can reach a client carries the HTTP status it maps to and a
public message that is safe to show. Provider details stay in ``detail`` and
are only echoed back in development mode.
"""

from typing import Any, Dict, Iterable, List, Optional


class RelayError(Exception):
    """Base exception for contact relay operations"""

    status_code = 500
    public_message = 'An unexpected error occurred'

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.public_message
        super().__init__(self.message)

    def to_dict(self, include_detail: bool = False) -> Dict[str, Any]:
        return {'success': False, 'message': self.message}


class ValidationError(RelayError):
    """Client input is missing or malformed"""

    status_code = 400
    public_message = 'Invalid request'

    def __init__(self, message: Optional[str] = None, fields: Iterable[str] = ()):
        super().__init__(message)
        self.fields: List[str] = list(fields)


class RateLimitError(RelayError):
    """Too many submissions from one address inside the rate window"""

    status_code = 429
    public_message = 'Too many requests from this IP, please try again later.'

    def __init__(self, retry_after: Optional[int] = None, message: Optional[str] = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self, include_detail: bool = False) -> Dict[str, Any]:
        payload = super().to_dict(include_detail)
        if self.retry_after is not None:
            payload['retryAfter'] = self.retry_after
        return payload


class DeliveryError(RelayError):
    """The email provider rejected the message or could not be reached"""

    status_code = 500
    public_message = 'Failed to send email. Please try again later.'

    def __init__(self, detail: str, retryable: bool = False,
                 provider_status: Optional[Any] = None):
        super().__init__()
        self.detail = detail
        self.retryable = retryable
        self.provider_status = provider_status

    def __str__(self) -> str:
        return self.detail

    def to_dict(self, include_detail: bool = False) -> Dict[str, Any]:
        payload = super().to_dict(include_detail)
        if include_detail:
            payload['error'] = self.detail
        return payload


class ConfigurationError(RelayError):
    """Required configuration is absent or invalid; raised at startup only"""

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__('Invalid configuration: ' + '; '.join(self.problems))

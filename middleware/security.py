# middleware/security.py
"""
Security Middleware for Request Processing
"""

import logging

from flask import request

from config.security import SecurityConfig

logger = logging.getLogger(__name__)


def security_headers(response):
    """Add security headers to all responses"""
    for header, value in SecurityConfig.SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    response.headers.setdefault('Content-Security-Policy', SecurityConfig.content_security_policy())
    return response


def log_rate_limit_breach(request_limit):
    """Flask-Limiter on_breach hook: record who tripped which limit"""
    logger.warning(
        f"Rate limit exceeded for {request.remote_addr} on {request.path} "
        f"({request_limit.limit})"
    )

# config/security.py
"""
Security defaults applied to every response and to the request body size
"""


class SecurityConfig:
    """Security configuration settings"""

    # Contact form bodies are small; reject anything larger early
    MAX_CONTENT_LENGTH = 64 * 1024

    # JSON API only, nothing to frame or script
    CSP_POLICY = {
        'default-src': "'none'",
        'frame-ancestors': "'none'",
        'base-uri': "'none'",
        'form-action': "'self'",
    }

    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Permissions-Policy': 'camera=(), microphone=(), geolocation=()',
    }

    @classmethod
    def content_security_policy(cls) -> str:
        return '; '.join(f"{directive} {value}" for directive, value in cls.CSP_POLICY.items())

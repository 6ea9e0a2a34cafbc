# config/settings.py
"""
Process-wide configuration for the contact relay service

Settings are read once at startup from the environment (optionally seeded from
a .env file) and frozen. Anything missing or malformed is collected and raised
as a single ConfigurationError so the process refuses to start.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from core.errors import ConfigurationError


TRANSPORT_BREVO = 'brevo'
TRANSPORT_SMTP = 'smtp'
TRANSPORTS = (TRANSPORT_BREVO, TRANSPORT_SMTP)

DEFAULT_SUBJECT = 'Website Contact Enquiry - Karlin Pharmaceuticals'
DEFAULT_BREVO_API_URL = 'https://api.brevo.com/v3/smtp/email'

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


@dataclass(frozen=True)
class MailSettings:
    """Sender identity, recipient and provider credentials"""
    transport: str
    sender_email: str
    recipient_email: str
    sender_name: str = 'Karlin Pharmaceuticals Website'
    subject: str = DEFAULT_SUBJECT
    timeout: float = 10.0
    timezone: str = 'Asia/Kolkata'

    # Brevo HTTP API
    brevo_api_key: Optional[str] = field(default=None, repr=False)
    brevo_api_url: str = DEFAULT_BREVO_API_URL

    # SMTP relay
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = field(default=None, repr=False)
    smtp_validate_certs: bool = True


@dataclass(frozen=True)
class Settings:
    """Top-level application settings"""
    mail: MailSettings
    env: str = 'production'
    port: int = 3000
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    cors_origins: Tuple[str, ...] = ('*',)
    rate_limit_max: int = 5
    rate_limit_window_seconds: int = 15 * 60
    ratelimit_storage_uri: str = 'memory://'
    ratelimit_strategy: str = 'fixed-window'
    honeypot_field: str = 'website'
    trust_proxy: bool = False
    whatsapp_number: str = '917358183156'
    version: str = '1.0.0'

    @property
    def is_development(self) -> bool:
        return self.env == 'development'

    @property
    def rate_limit(self) -> str:
        """Limit string in the syntax Flask-Limiter understands"""
        return f"{self.rate_limit_max} per {self.rate_limit_window_seconds} seconds"

    def with_overrides(self, **changes) -> 'Settings':
        return replace(self, **changes)


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in _TRUE_VALUES


def _split_origins(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ('*',)
    origins = tuple(o.strip() for o in value.split(',') if o.strip())
    return origins or ('*',)


def _number(env: Mapping[str, str], key: str, default, cast, problems: List[str]):
    raw = env.get(key)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        problems.append(f"{key} must be a number, got {raw!r}")
        return default
    if value <= 0:
        problems.append(f"{key} must be positive, got {raw!r}")
        return default
    return value


def _window_seconds(env: Mapping[str, str], problems: List[str]) -> int:
    # Seconds win over minutes when both are set
    if (env.get('RATE_LIMIT_WINDOW_SECONDS') or '').strip():
        return _number(env, 'RATE_LIMIT_WINDOW_SECONDS', 15 * 60, int, problems)
    return _number(env, 'RATE_LIMIT_WINDOW_MINUTES', 15, int, problems) * 60


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Frozen Settings instance

    Raises:
        ConfigurationError: listing every missing or invalid key
    """
    env: Dict[str, str] = dict(os.environ if environ is None else environ)
    problems: List[str] = []

    def required(key: str) -> str:
        value = (env.get(key) or '').strip()
        if not value:
            problems.append(f"{key} is required")
        return value

    transport = (env.get('MAIL_TRANSPORT') or TRANSPORT_BREVO).strip().lower()
    if transport not in TRANSPORTS:
        problems.append(f"MAIL_TRANSPORT must be one of {', '.join(TRANSPORTS)}, got {transport!r}")

    sender_email = required('SENDER_EMAIL')
    recipient_email = required('TO_EMAIL')

    brevo_api_key = None
    smtp_host = smtp_user = smtp_password = None
    if transport == TRANSPORT_BREVO:
        brevo_api_key = required('BREVO_API_KEY')
    elif transport == TRANSPORT_SMTP:
        smtp_host = required('SMTP_HOST')
        smtp_user = required('SMTP_USER')
        smtp_password = required('SMTP_PASS')

    mail = MailSettings(
        transport=transport,
        sender_email=sender_email,
        recipient_email=recipient_email,
        sender_name=(env.get('SENDER_NAME') or 'Karlin Pharmaceuticals Website').strip(),
        subject=(env.get('MAIL_SUBJECT') or DEFAULT_SUBJECT).strip(),
        timeout=_number(env, 'MAIL_TIMEOUT', 10.0, float, problems),
        timezone=(env.get('MAIL_TIMEZONE') or 'Asia/Kolkata').strip(),
        brevo_api_key=brevo_api_key,
        brevo_api_url=(env.get('BREVO_API_URL') or DEFAULT_BREVO_API_URL).strip(),
        smtp_host=smtp_host,
        smtp_port=_number(env, 'SMTP_PORT', 587, int, problems),
        smtp_user=smtp_user,
        smtp_password=smtp_password,
        smtp_validate_certs=_flag(env.get('SMTP_VALIDATE_CERTS'), True),
    )

    strategy = (env.get('RATELIMIT_STRATEGY') or 'fixed-window').strip()
    if strategy not in ('fixed-window', 'moving-window', 'sliding-window-counter'):
        problems.append(f"RATELIMIT_STRATEGY {strategy!r} is not supported")

    settings = Settings(
        mail=mail,
        env=(env.get('APP_ENV') or env.get('FLASK_ENV') or 'production').strip().lower(),
        port=_number(env, 'PORT', 3000, int, problems),
        log_level=(env.get('LOG_LEVEL') or 'INFO').strip().upper(),
        log_file=(env.get('LOG_FILE') or '').strip() or None,
        cors_origins=_split_origins(env.get('CORS_ORIGINS')),
        rate_limit_max=_number(env, 'RATE_LIMIT_MAX', 5, int, problems),
        rate_limit_window_seconds=_window_seconds(env, problems),
        ratelimit_storage_uri=(env.get('RATELIMIT_STORAGE_URI') or 'memory://').strip(),
        ratelimit_strategy=strategy,
        honeypot_field=(env.get('HONEYPOT_FIELD') or 'website').strip(),
        trust_proxy=_flag(env.get('TRUST_PROXY'), False),
        whatsapp_number=(env.get('WHATSAPP_NUMBER') or '917358183156').strip(),
        version=(env.get('APP_VERSION') or '1.0.0').strip(),
    )

    if not any(ch.isdigit() for ch in settings.whatsapp_number):
        problems.append(f"WHATSAPP_NUMBER {settings.whatsapp_number!r} contains no digits")

    if problems:
        raise ConfigurationError(problems)

    return settings


def load_settings_from_env_file(env_file: Optional[str] = None) -> Settings:
    """Seed os.environ from a .env file (existing variables win) and load settings"""
    path = Path(env_file) if env_file else Path.cwd() / '.env'
    if path.exists():
        load_dotenv(path, override=False)
    return load_settings()

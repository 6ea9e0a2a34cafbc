# app.py
"""
Flask Application Factory for the Karlin contact relay

Wires together:
- Environment-based configuration (fails fast when incomplete)
- Per-IP rate limiting with standard X-RateLimit-* headers
- CORS for the website origins
- The mail transport (Brevo HTTP API or SMTP) behind a single interface
- Uniform JSON error envelopes and security headers
"""

import logging
import logging.handlers
import math
import sys
import time
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.errors import RateLimitExceeded
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from api.contact import EXTENSION_KEY, RelayState, contact_bp
from api.responses import error_response
from config.security import SecurityConfig
from config.settings import Settings, load_settings_from_env_file
from core.errors import ConfigurationError, DeliveryError, RateLimitError, RelayError
from core.template_engine import EnquiryTemplateEngine
from middleware.security import log_rate_limit_breach, security_headers
from services.relay import MailTransport, build_transport

logger = logging.getLogger(__name__)

HTTP_ERROR_MESSAGES = {
    400: 'Invalid request body',
    404: 'The requested resource was not found',
    405: 'Method not allowed',
    413: 'Request body too large',
}


def setup_logging(settings: Settings) -> None:
    """
    Configure process logging

    Installs a stream handler (and a rotating file handler when LOG_FILE is
    set) on the root logger. Handlers installed by an earlier call are
    replaced, anything else attached to the root logger is left alone.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, '_contact_relay', False):
            root.removeHandler(handler)

    formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    log_level = getattr(logging, settings.log_level, logging.INFO)

    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            settings.log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        handler._contact_relay = True
        root.addHandler(handler)
    root.setLevel(log_level)

    if not settings.is_development:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)


def configure_rate_limiting(app: Flask, settings: Settings) -> Limiter:
    """Attach a per-IP limiter to the contact blueprint"""
    limiter = Limiter(
        key_func=get_remote_address,
        app=app,
        storage_uri=settings.ratelimit_storage_uri,
        strategy=settings.ratelimit_strategy,
        headers_enabled=True,
        default_limits=[],
        on_breach=log_rate_limit_breach,
    )
    limiter.limit(settings.rate_limit, methods=['POST'])(contact_bp)
    app.logger.info(f"Rate limit on contact endpoints: {settings.rate_limit} per IP")
    return limiter


def retry_after_seconds(reset_at: float, now: Optional[float] = None) -> int:
    """Whole seconds until the window resets, never 0 while still limited"""
    now = time.time() if now is None else now
    return max(math.ceil(reset_at - now), 1)


def configure_error_handlers(app: Flask, settings: Settings, limiter: Limiter) -> None:
    """Convert every failure into the JSON envelope"""

    @app.errorhandler(RelayError)
    def relay_error(error: RelayError):
        if isinstance(error, DeliveryError):
            app.logger.error(
                f"Error sending email (retryable={error.retryable}): {error.detail}"
            )
        else:
            app.logger.info(f"Rejected request from {request.remote_addr}: {error.message}")
        return error_response(error, include_detail=settings.is_development)

    @app.errorhandler(RateLimitExceeded)
    def rate_limit_exceeded(error: RateLimitExceeded):
        retry_after = None
        current = limiter.current_limit
        if current is not None:
            retry_after = retry_after_seconds(current.reset_at)
        return error_response(RateLimitError(retry_after=retry_after))

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        message = HTTP_ERROR_MESSAGES.get(error.code, error.name)
        response = jsonify({'success': False, 'message': message})
        return response, error.code

    @app.errorhandler(Exception)
    def handle_exception(error: Exception):
        """Handle unexpected exceptions"""
        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({
            'success': False,
            'message': 'An unexpected error occurred',
        }), 500


def configure_health_checks(app: Flask, settings: Settings) -> None:
    """Health and discovery endpoints"""

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'OK',
            'message': 'Karlin Email Server is running',
            'timestamp': datetime.now(timezone.utc).isoformat(),
        })

    @app.route('/')
    def index():
        return jsonify({
            'message': 'Karlin Pharmaceuticals Email API',
            'version': settings.version,
            'transport': settings.mail.transport,
            'endpoints': {
                'health': '/health',
                'sendEmail': 'POST /api/send-email',
                'whatsappLink': 'POST /api/whatsapp-link',
            }
        })


def create_app(settings: Optional[Settings] = None,
               transport: Optional[MailTransport] = None) -> Flask:
    """
    Flask application factory

    Args:
        settings: Configuration; read from the environment (and .env) when omitted
        transport: Mail transport; built from settings.mail when omitted

    Returns:
        Configured Flask application instance

    Raises:
        ConfigurationError: when required configuration is missing or invalid
    """
    settings = settings or load_settings_from_env_file()

    app = Flask(__name__)
    app.config.from_object(SecurityConfig)

    if settings.trust_proxy:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    setup_logging(settings)
    app.logger.info(f"Starting contact relay in {settings.env} mode")

    if transport is None:
        transport = build_transport(settings.mail, EnquiryTemplateEngine(settings.mail.timezone))
    app.extensions[EXTENSION_KEY] = RelayState(settings=settings, transport=transport)

    CORS(app,
         resources={r'/api/*': {'origins': list(settings.cors_origins)}},
         methods=['POST', 'OPTIONS'],
         allow_headers=['Content-Type'])

    limiter = configure_rate_limiting(app, settings)
    app.register_blueprint(contact_bp)

    configure_error_handlers(app, settings, limiter)
    configure_health_checks(app, settings)
    app.after_request(security_headers)

    app.logger.info(f"Mail transport: {transport.name}, sending emails to {settings.mail.recipient_email}")
    return app


def verify_transport(app: Flask) -> bool:
    """Startup connectivity check; logs instead of failing so the site stays up"""
    state: RelayState = app.extensions[EXTENSION_KEY]
    try:
        state.transport.verify()
    except DeliveryError as e:
        app.logger.error(f"Mail transport check failed: {e.detail}")
        return False
    return True


def main() -> int:
    try:
        app = create_app()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    settings: Settings = app.extensions[EXTENSION_KEY].settings
    verify_transport(app)

    app.logger.info('=' * 50)
    app.logger.info(f"Server running on: http://localhost:{settings.port}")
    app.logger.info(f"Health check: http://localhost:{settings.port}/health")
    app.logger.info(f"Email endpoint: http://localhost:{settings.port}/api/send-email")
    app.logger.info('=' * 50)

    app.run(host='0.0.0.0', port=settings.port, debug=settings.is_development, threaded=True)
    return 0


if __name__ == '__main__':
    sys.exit(main())

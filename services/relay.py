# services/relay.py
"""
Relay client: delivers a validated Enquiry to the company inbox

Two interchangeable transports implement MailTransport.send(enquiry) -> message id:
- SMTPTransport: authenticated TLS session via aiosmtplib
- BrevoTransport: Brevo transactional email REST API via requests

Neither retries on its own. Any provider failure is raised as DeliveryError with
``retryable`` set for transient conditions (timeouts, connection errors, 4xx
SMTP replies, 5xx/429 HTTP replies).
"""

import asyncio
import html
import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import Any, Dict, Optional

import aiosmtplib
import requests

from config.settings import MailSettings, TRANSPORT_BREVO, TRANSPORT_SMTP
from core.enquiry import Enquiry
from core.errors import ConfigurationError, DeliveryError
from core.template_engine import EnquiryTemplateEngine

logger = logging.getLogger(__name__)


class MailTransport(ABC):
    """Sends one enquiry to the configured recipient"""

    name = 'base'

    def __init__(self, settings: MailSettings,
                 renderer: Optional[EnquiryTemplateEngine] = None):
        self.settings = settings
        self.renderer = renderer or EnquiryTemplateEngine(settings.timezone)

    @abstractmethod
    def send(self, enquiry: Enquiry) -> str:
        """Deliver the enquiry and return the provider's message id"""

    def verify(self) -> None:
        """Check that the provider accepts our credentials; raises DeliveryError"""

    def reply_to_name(self, enquiry: Enquiry) -> str:
        return html.unescape(enquiry.name)


class SMTPTransport(MailTransport):
    """Relay through an authenticated SMTP server (STARTTLS, or implicit TLS on 465)"""

    name = TRANSPORT_SMTP

    @property
    def implicit_tls(self) -> bool:
        return self.settings.smtp_port == 465

    def build_message(self, enquiry: Enquiry) -> MIMEMultipart:
        rendered = self.renderer.render(enquiry)
        sender_domain = self.settings.sender_email.rsplit('@', 1)[-1]

        msg = MIMEMultipart('alternative')
        msg['Subject'] = self.settings.subject
        msg['From'] = formataddr((self.settings.sender_name, self.settings.sender_email))
        msg['To'] = self.settings.recipient_email
        msg['Reply-To'] = formataddr((self.reply_to_name(enquiry), enquiry.email))
        msg['Date'] = formatdate(localtime=True)
        msg['Message-ID'] = make_msgid(domain=sender_domain)

        msg.attach(MIMEText(rendered.text, 'plain', 'utf-8'))
        msg.attach(MIMEText(rendered.html, 'html', 'utf-8'))
        return msg

    def _client(self) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=self.settings.smtp_host,
            port=self.settings.smtp_port,
            timeout=self.settings.timeout,
            use_tls=self.implicit_tls,
            start_tls=not self.implicit_tls,
            validate_certs=self.settings.smtp_validate_certs,
        )

    async def _deliver(self, msg: Optional[MIMEMultipart]) -> Any:
        smtp = self._client()
        await smtp.connect()
        try:
            if self.settings.smtp_user and self.settings.smtp_password:
                await smtp.login(self.settings.smtp_user, self.settings.smtp_password)
            response = await smtp.send_message(msg) if msg is not None else None
        except BaseException:
            smtp.close()
            raise

        # The message is already accepted; a failed QUIT must not report it as lost
        try:
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError) as e:
            smtp.close()
            logger.warning(f"SMTP QUIT to {self.settings.smtp_host} failed, closing connection: {e}")
        return response

    def _run(self, msg: Optional[MIMEMultipart]) -> Any:
        try:
            return asyncio.run(self._deliver(msg))
        except aiosmtplib.SMTPResponseException as e:
            raise DeliveryError(
                f"SMTP server replied {e.code}: {e.message}",
                retryable=400 <= e.code < 500,
                provider_status=e.code,
            ) from e
        except (aiosmtplib.SMTPException, asyncio.TimeoutError, OSError) as e:
            raise DeliveryError(
                f"SMTP connection to {self.settings.smtp_host}:{self.settings.smtp_port} failed: {e}",
                retryable=True,
            ) from e

    def send(self, enquiry: Enquiry) -> str:
        msg = self.build_message(enquiry)
        self._run(msg)
        message_id = msg['Message-ID']
        logger.info(f"Email sent via SMTP: {message_id}")
        return message_id

    def verify(self) -> None:
        self._run(None)
        logger.info(f"SMTP server {self.settings.smtp_host} is ready to send emails")


class BrevoTransport(MailTransport):
    """Relay through Brevo's transactional email REST endpoint"""

    name = TRANSPORT_BREVO

    def _headers(self) -> Dict[str, str]:
        return {
            'api-key': self.settings.brevo_api_key or '',
            'accept': 'application/json',
            'content-type': 'application/json',
        }

    def build_payload(self, enquiry: Enquiry) -> Dict[str, Any]:
        rendered = self.renderer.render(enquiry)
        return {
            'sender': {
                'name': self.settings.sender_name,
                'email': self.settings.sender_email,
            },
            'to': [{'email': self.settings.recipient_email}],
            'replyTo': {
                'email': enquiry.email,
                'name': self.reply_to_name(enquiry),
            },
            'subject': self.settings.subject,
            'htmlContent': rendered.html,
            'textContent': rendered.text,
        }

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or response.reason or 'no response body'
        if isinstance(body, dict):
            return str(body.get('message') or body.get('code') or body)
        return str(body)

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = requests.request(
                method, url, headers=self._headers(), timeout=self.settings.timeout, **kwargs
            )
        except requests.Timeout as e:
            raise DeliveryError(
                f"Brevo API did not respond within {self.settings.timeout:g}s",
                retryable=True,
            ) from e
        except requests.RequestException as e:
            raise DeliveryError(f"Brevo API request failed: {e}", retryable=True) from e

        if not response.ok:
            status = response.status_code
            raise DeliveryError(
                f"Brevo API returned {status}: {self._error_detail(response)}",
                retryable=status >= 500 or status == 429,
                provider_status=status,
            )
        return response

    def send(self, enquiry: Enquiry) -> str:
        response = self._request('POST', self.settings.brevo_api_url, json=self.build_payload(enquiry))

        try:
            body = response.json()
        except ValueError as e:
            raise DeliveryError('Brevo API returned a non-JSON response',
                                provider_status=response.status_code) from e

        message_id = body.get('messageId') if isinstance(body, dict) else None
        if not message_id:
            raise DeliveryError('Brevo API response did not include a messageId',
                                provider_status=response.status_code)

        logger.info(f"Email sent via Brevo API: {message_id}")
        return message_id

    def verify(self) -> None:
        base = self.settings.brevo_api_url.split('/smtp/', 1)[0]
        self._request('GET', f"{base}/account")
        logger.info("Brevo API key accepted")


def build_transport(settings: MailSettings,
                    renderer: Optional[EnquiryTemplateEngine] = None) -> MailTransport:
    """Instantiate the transport named by settings.transport"""
    if settings.transport == TRANSPORT_SMTP:
        return SMTPTransport(settings, renderer)
    if settings.transport == TRANSPORT_BREVO:
        return BrevoTransport(settings, renderer)
    raise ConfigurationError([f"Unknown mail transport {settings.transport!r}"])

# core/template_engine.py
"""
Email body rendering for relayed enquiries

Produces the plain-text and HTML parts of the notification sent to the company
inbox. Enquiry fields arrive already HTML-escaped, so the HTML environment
treats them as markup and the text environment unescapes them.
"""

import html
import logging
from dataclasses import dataclass
from typing import Dict, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jinja2 import Environment, StrictUndefined
from markupsafe import Markup, escape

from core.enquiry import Enquiry
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


TEXT_TEMPLATE = """\
New enquiry from Karlin Pharmaceuticals website

========================================
CONTACT DETAILS
========================================
Name:        {{ name }}
Email:       {{ email }}
Company:     {{ company }}
Country:     {{ country }}
========================================

MESSAGE:
----------------------------------------
{{ message }}
----------------------------------------

Submitted: {{ submitted }}
{% if source_ip %}
IP: {{ source_ip }}
{% endif %}
"""

HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; color: #333;">
<h2 style="color: #0b5394;">New enquiry from Karlin Pharmaceuticals website</h2>
<table cellpadding="6" cellspacing="0" border="0">
  <tr><td><strong>Name:</strong></td><td>{{ name }}</td></tr>
  <tr><td><strong>Email:</strong></td><td><a href="mailto:{{ email }}">{{ email }}</a></td></tr>
  <tr><td><strong>Company:</strong></td><td>{{ company }}</td></tr>
  <tr><td><strong>Country:</strong></td><td>{{ country }}</td></tr>
</table>
<h3>Message</h3>
<p style="padding: 10px; background: #f4f4f4; border-left: 4px solid #0b5394;">{{ message|nl2br }}</p>
<p style="font-size: 12px; color: #888;">Submitted: {{ submitted }}{% if source_ip %} &middot; IP: {{ source_ip }}{% endif %}</p>
</body>
</html>
"""


@dataclass(frozen=True)
class RenderedEmail:
    text: str
    html: str


def _nl2br(value) -> Markup:
    value = escape(value)
    return Markup('<br>\n').join(value.replace('\r\n', '\n').split('\n'))


class EnquiryTemplateEngine:
    """Renders the text and HTML bodies for an Enquiry"""

    TIMESTAMP_FORMAT = '%d/%m/%Y %H:%M:%S %Z'

    def __init__(self, timezone: str = 'Asia/Kolkata'):
        try:
            self.tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationError([f"MAIL_TIMEZONE {timezone!r} is not a known time zone"])

        self.html_env = Environment(
            autoescape=True,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.html_env.filters['nl2br'] = _nl2br
        self.text_env = Environment(
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

        self._html = self.html_env.from_string(HTML_TEMPLATE)
        self._text = self.text_env.from_string(TEXT_TEMPLATE)

    def format_timestamp(self, enquiry: Enquiry) -> str:
        return enquiry.submitted_at.astimezone(self.tz).strftime(self.TIMESTAMP_FORMAT)

    def _context(self, enquiry: Enquiry) -> Dict[str, Any]:
        return {
            'name': enquiry.name,
            'email': enquiry.email,
            'company': enquiry.company,
            'country': enquiry.country,
            'message': enquiry.message,
            'submitted': self.format_timestamp(enquiry),
            'source_ip': enquiry.source_ip,
        }

    def render_text(self, enquiry: Enquiry) -> str:
        context = self._context(enquiry)
        for key in ('name', 'company', 'country', 'message'):
            context[key] = html.unescape(context[key])
        return self._text.render(**context).strip() + '\n'

    def render_html(self, enquiry: Enquiry) -> str:
        context = self._context(enquiry)
        # Already escaped by the validator
        for key in ('name', 'company', 'country', 'message'):
            context[key] = Markup(context[key])
        return self._html.render(**context)

    def render(self, enquiry: Enquiry) -> RenderedEmail:
        return RenderedEmail(text=self.render_text(enquiry), html=self.render_html(enquiry))

from datetime import datetime, timezone

import pytest

from core.enquiry import parse_enquiry
from core.errors import ConfigurationError
from core.template_engine import EnquiryTemplateEngine


@pytest.fixture
def enquiry(valid_form):
    valid_form['company'] = 'Smith & Sons'
    valid_form['message'] = 'First line\nSecond <i>line</i>'
    return parse_enquiry(
        valid_form,
        source_ip='198.51.100.4',
        now=datetime(2025, 1, 15, 6, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def engine():
    return EnquiryTemplateEngine('Asia/Kolkata')


def test_text_body_layout(engine, enquiry):
    text = engine.render_text(enquiry)
    assert text.startswith('New enquiry from Karlin Pharmaceuticals website')
    assert 'Name:        Priya Raman' in text
    assert 'Email:       priya.raman@medsupply.co.in' in text
    assert 'Company:     Smith & Sons' in text
    assert 'Country:     India' in text
    assert 'First line\nSecond line' in text
    assert 'IP: 198.51.100.4' in text


def test_timestamp_uses_configured_zone(engine, enquiry):
    assert 'Submitted: 15/01/2025 11:30:00 IST' in engine.render_text(enquiry)


def test_html_body_does_not_double_escape(engine, enquiry):
    body = engine.render_html(enquiry)
    assert 'Smith &amp; Sons' in body
    assert '&amp;amp;' not in body
    assert 'First line<br>\nSecond line' in body
    assert '<i>' not in body


def test_ip_line_omitted_without_source(engine, valid_form):
    text = engine.render_text(parse_enquiry(valid_form))
    assert 'IP:' not in text


def test_render_returns_both_parts(engine, enquiry):
    rendered = engine.render(enquiry)
    assert rendered.text and rendered.html
    assert rendered.html.lstrip().startswith('<!DOCTYPE html>')


def test_unknown_timezone():
    with pytest.raises(ConfigurationError):
        EnquiryTemplateEngine('Mars/Olympus_Mons')

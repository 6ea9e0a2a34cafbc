from datetime import datetime, timezone

import pytest

from core.enquiry import (
    COMPANY_PLACEHOLDER,
    field_value,
    is_honeypot_tripped,
    parse_enquiry,
    sanitize_text,
)
from core.errors import ValidationError


@pytest.mark.parametrize('missing', ['name', 'email', 'country', 'message'])
def test_required_fields(valid_form, missing):
    valid_form[missing] = '   '
    with pytest.raises(ValidationError) as exc:
        parse_enquiry(valid_form)
    assert exc.value.message == 'All required fields must be filled'
    assert exc.value.fields == [missing]


def test_absent_field_counts_as_missing(valid_form):
    del valid_form['country']
    with pytest.raises(ValidationError) as exc:
        parse_enquiry(valid_form)
    assert exc.value.fields == ['country']


@pytest.mark.parametrize('address', [
    'not-an-email',
    'priya@',
    '@medsupply.co.in',
    'priya raman@medsupply.co.in',
    'priya@medsupply',
])
def test_malformed_email(valid_form, address):
    valid_form['email'] = address
    with pytest.raises(ValidationError) as exc:
        parse_enquiry(valid_form)
    assert exc.value.message == 'Invalid email format'


def test_company_defaults_to_placeholder(valid_form):
    valid_form.pop('company')
    enquiry = parse_enquiry(valid_form)
    assert enquiry.company == COMPANY_PLACEHOLDER


def test_fields_are_trimmed_and_sanitized(valid_form):
    valid_form['name'] = '  <b>Priya</b> Raman  '
    valid_form['message'] = '<script>alert("x")</script>Price & terms?'
    enquiry = parse_enquiry(valid_form)
    assert enquiry.name == 'Priya Raman'
    assert '<' not in enquiry.message
    assert '&amp;' in enquiry.message
    assert '&quot;x&quot;' in enquiry.message


def test_single_line_fields_lose_line_breaks(valid_form):
    valid_form['name'] = 'Priya\r\nBcc: victim@spam.example'
    enquiry = parse_enquiry(valid_form)
    assert '\n' not in enquiry.name
    assert '\r' not in enquiry.name


def test_message_keeps_line_breaks(valid_form):
    valid_form['message'] = 'Line one\nLine two'
    assert parse_enquiry(valid_form).message == 'Line one\nLine two'


def test_markup_only_field_is_rejected(valid_form):
    valid_form['country'] = '<img src=x>'
    with pytest.raises(ValidationError) as exc:
        parse_enquiry(valid_form)
    assert exc.value.fields == ['country']


def test_oversized_message(valid_form):
    valid_form['message'] = 'x' * 5001
    with pytest.raises(ValidationError) as exc:
        parse_enquiry(valid_form)
    assert exc.value.message == 'Message is too long'


def test_metadata_is_carried(valid_form):
    now = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
    enquiry = parse_enquiry(valid_form, source_ip='203.0.113.7', now=now)
    assert enquiry.source_ip == '203.0.113.7'
    assert enquiry.submitted_at == now


def test_non_string_values_are_coerced(valid_form):
    valid_form['company'] = 42
    assert parse_enquiry(valid_form).company == '42'


def test_sanitize_text_escapes_quotes():
    assert sanitize_text("O'Neil \"Labs\"") == 'O&#x27;Neil &quot;Labs&quot;'


@pytest.mark.parametrize('value, tripped', [
    (None, False),
    ('', False),
    ('   ', False),
    ('http://spam.example', True),
])
def test_honeypot(value, tripped):
    form = {'website': value} if value is not None else {}
    assert is_honeypot_tripped(form) is tripped


def test_honeypot_custom_field():
    assert is_honeypot_tripped({'fax': 'x'}, field_name='fax')
    assert not is_honeypot_tripped({'fax': 'x'})


@pytest.mark.parametrize('value', [{'first': 'Priya'}, ['Priya'], []])
def test_nested_values_are_rejected(valid_form, value):
    valid_form['name'] = value
    with pytest.raises(ValidationError) as exc:
        parse_enquiry(valid_form)
    assert exc.value.message == 'Invalid request body'
    assert exc.value.fields == ['name']


def test_field_value_reads_scalars():
    form = {'name': '  Priya ', 'age': 7}
    assert field_value(form, 'name') == 'Priya'
    assert field_value(form, 'age') == '7'
    assert field_value(form, 'country') == ''


def test_nested_honeypot_counts_as_tripped():
    assert is_honeypot_tripped({'website': {'url': 'http://spam.example'}})

from urllib.parse import parse_qs, urlsplit

import pytest

from core.errors import ValidationError
from services.whatsapp import build_whatsapp_link, link_from_form


def test_link_prefills_message():
    url = build_whatsapp_link('+91 73581 83156', 'Priya Raman', 'priya@medsupply.co.in', 'Need a quote & MSDS')

    parts = urlsplit(url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == 'https://wa.me/917358183156'
    assert parse_qs(parts.query)['text'] == [
        'Hello, my name is Priya Raman.\nEmail: priya@medsupply.co.in\nMessage: Need a quote & MSDS'
    ]
    assert '&' not in parts.query


@pytest.mark.parametrize('field', ['name', 'email', 'message'])
def test_blank_fields(field):
    form = {'name': 'Priya', 'email': 'priya@medsupply.co.in', 'message': 'Hi'}
    form[field] = '  '
    with pytest.raises(ValidationError) as exc:
        link_from_form('917358183156', form)
    assert exc.value.fields == [field]


def test_phone_without_digits():
    with pytest.raises(ValueError):
        build_whatsapp_link('not-a-number', 'Priya', 'priya@medsupply.co.in', 'Hi')

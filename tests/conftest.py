import pytest

from app import create_app
from config.settings import MailSettings, Settings
from services.relay import MailTransport


class FakeTransport(MailTransport):
    """Records enquiries instead of contacting a provider"""

    name = 'fake'

    def __init__(self, settings, message_id='<20251019.fake-1@karlinpharmaceuticals.com>'):
        super().__init__(settings)
        self.message_id = message_id
        self.error = None
        self.sent = []

    def send(self, enquiry):
        self.sent.append(enquiry)
        if self.error is not None:
            raise self.error
        return self.message_id


@pytest.fixture
def mail_settings():
    return MailSettings(
        transport='brevo',
        sender_email='noreply@karlinpharmaceuticals.com',
        recipient_email='info@karlinpharmaceuticals.com',
        brevo_api_key='xkeysib-test-key',
    )


@pytest.fixture
def settings(mail_settings):
    return Settings(mail=mail_settings, rate_limit_max=5)


@pytest.fixture
def transport(mail_settings):
    return FakeTransport(mail_settings)


@pytest.fixture
def app(settings, transport):
    return create_app(settings, transport=transport)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def valid_form():
    return {
        'name': 'Priya Raman',
        'email': 'priya.raman@medsupply.co.in',
        'company': 'MedSupply Distributors',
        'country': 'India',
        'message': 'Please share your export price list for paracetamol tablets.',
    }

import pathlib
import sys
from typing import List

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cardvault.app.billing import BillingContact  # noqa: E402
from cardvault.app.services.billing import EmailDowngradeNotifier  # noqa: E402
from cardvault.mail import (  # noqa: E402
    DevPrintProvider,
    EmailProvider,
    OutboundEmail,
    SMTPProvider,
    SMTPSettings,
    create_email_provider,
    load_email_config,
    render_downgrade_email,
)


class _RecordingProvider(EmailProvider):
    name = "recording"

    def __init__(self) -> None:
        super().__init__(sender="noreply@example.com")
        self.sent: List[OutboundEmail] = []

    def send(self, email: OutboundEmail) -> None:
        self.sent.append(email)


class _FailingProvider(EmailProvider):
    name = "failing"

    def __init__(self, exc: Exception) -> None:
        super().__init__(sender="noreply@example.com")
        self._exc = exc

    def send(self, email: OutboundEmail) -> None:
        raise self._exc


def test_default_provider_is_dev_print():
    config = load_email_config(env={})
    provider = create_email_provider(config)
    assert isinstance(provider, DevPrintProvider)
    assert provider.sender == "noreply@solevault.app"
    assert config.downgrade_cc == ()
    assert config.smtp is None


def test_unknown_provider_falls_back_to_dev():
    provider = create_email_provider(load_email_config(env={"EMAIL_PROVIDER": "carrier-pigeon"}))
    assert isinstance(provider, DevPrintProvider)


def test_smtp_provider_configuration():
    config = load_email_config(
        env={
            "EMAIL_PROVIDER": "smtp",
            "SMTP_HOST": "mail.example.com",
            "SMTP_PORT": "2525",
            "SMTP_USER": "mailer",
            "SMTP_PASS": "secret",
            "SMTP_USE_TLS": "off",
            "FROM_EMAIL": "notifications@example.com",
        }
    )
    provider = create_email_provider(config)
    assert isinstance(provider, SMTPProvider)
    assert provider.settings.host == "mail.example.com"
    assert provider.settings.port == 2525
    assert provider.settings.starttls is False
    assert provider.settings.authenticated is True
    assert provider.sender == "notifications@example.com"


def test_invalid_smtp_port_names_the_variable():
    with pytest.raises(ValueError, match="SMTP_PORT"):
        load_email_config(env={"EMAIL_PROVIDER": "smtp", "SMTP_PORT": "twenty-five"})


def test_downgrade_cc_accepts_comma_separated_addresses():
    config = load_email_config(env={"DOWNGRADE_CC_EMAIL": "ops@example.com, billing@example.com,"})
    assert config.downgrade_cc == ("ops@example.com", "billing@example.com")


def test_pricing_url_strips_trailing_slash():
    config = load_email_config(env={"FRONTEND_URL": "https://app.test/"})
    assert config.pricing_url == "https://app.test/pricing"


def test_smtp_message_carries_cc_and_both_bodies():
    provider = SMTPProvider(
        sender="billing@example.com",
        settings=SMTPSettings(host="localhost", port=25, username=None, password=None, starttls=False),
    )
    email = OutboundEmail(
        to="user@example.com",
        subject="Hi",
        text_body="Hi",
        html_body="<p>Hi</p>",
        cc=("ops@example.com",),
    )

    message = provider.build_message(email)

    assert message["Cc"] == "ops@example.com"
    assert message["From"] == "billing@example.com"
    assert message.is_multipart()
    assert email.recipients == ("user@example.com", "ops@example.com")


def test_downgrade_email_mentions_reason_and_pricing_link():
    email = render_downgrade_email("user@example.com", "past_due", pricing_url="https://app.test/pricing")
    assert email.to == "user@example.com"
    assert "Free plan" in email.text_body
    assert "could not be collected" in email.text_body
    assert "https://app.test/pricing" in email.html_body


def test_downgrade_notifier_copies_operator_address():
    provider = _RecordingProvider()
    config = load_email_config(env={"DOWNGRADE_CC_EMAIL": "ops@example.com", "APP_BASE_URL": "https://app.test"})
    notifier = EmailDowngradeNotifier(provider_factory=lambda: provider, config=config)

    notifier.notify_downgrade(BillingContact(user_id="u1", email="collector@example.com"), "unpaid")

    sent = provider.sent[0]
    assert sent.to == "collector@example.com"
    assert sent.cc == ("ops@example.com",)
    assert "unpaid invoices" in sent.text_body
    assert "https://app.test/pricing" in sent.text_body


def test_downgrade_notifier_skips_users_without_email():
    provider = _RecordingProvider()
    notifier = EmailDowngradeNotifier(provider_factory=lambda: provider, config=load_email_config(env={}))

    notifier.notify_downgrade(BillingContact(user_id="u1", email=None), "canceled")

    assert provider.sent == []


def test_downgrade_notifier_propagates_send_errors():
    failing = _FailingProvider(RuntimeError("boom"))
    notifier = EmailDowngradeNotifier(provider_factory=lambda: failing, config=load_email_config(env={}))

    with pytest.raises(RuntimeError):
        notifier.notify_downgrade(BillingContact(user_id="u1", email="collector@example.com"), "canceled")

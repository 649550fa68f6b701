import ssl

import pytest

from glowfolio.config import Settings
from glowfolio.mailer import ContactMailer, EmailDeliveryError, build_contact_message


@pytest.fixture
def make_mailer(monkeypatch, fake_smtp):
    def _make(**overrides):
        values = {
            "_env_file": None,
            "smtp_host": "smtp.example.cz",
            "smtp_port": 465,
            "smtp_user": "web@glowbyhanka.cz",
            "smtp_password": "app-password",
            "contact_email": "hanka@glowbyhanka.cz",
        }
        values.update(overrides)
        mailer = ContactMailer(Settings(**values))
        monkeypatch.setattr(mailer, "smtp_class", fake_smtp)
        monkeypatch.setattr(mailer, "smtp_ssl_class", fake_smtp)
        return mailer

    return _make


def _assert_verifying_context(context):
    assert isinstance(context, ssl.SSLContext)
    assert context.verify_mode == ssl.CERT_REQUIRED
    assert context.check_hostname


def test_build_contact_message():
    msg = build_contact_message(
        "Jana <b>",
        "jana@example.cz",
        "Ahoj\n<script>",
        sender="web@glowbyhanka.cz",
        recipient="hanka@glowbyhanka.cz",
    )
    assert msg["Subject"] == "Nová zpráva z kontaktního formuláře od Jana <b>"
    assert msg["From"] == "web@glowbyhanka.cz"
    assert msg["To"] == "hanka@glowbyhanka.cz"
    assert msg["Reply-To"] == "jana@example.cz"

    text = msg.get_body(preferencelist=("plain",)).get_content()
    assert text.strip() == "Jméno: Jana <b>\nEmail: jana@example.cz\n\nZpráva:\nAhoj\n<script>"

    html_part = msg.get_body(preferencelist=("html",)).get_content()
    assert "Jana &lt;b&gt;" in html_part
    assert "Ahoj<br>&lt;script&gt;" in html_part
    assert "<script>" not in html_part


def test_multiline_name_stays_on_one_subject_line():
    msg = build_contact_message(
        "Jana\r\n  Nováková",
        "jana@example.cz",
        "Ahoj",
        sender="web@glowbyhanka.cz",
        recipient="hanka@glowbyhanka.cz",
    )
    assert msg["Subject"] == "Nová zpráva z kontaktního formuláře od Jana Nováková"
    text = msg.get_body(preferencelist=("plain",)).get_content()
    assert "Jméno: Jana\n  Nováková" in text.replace("\r\n", "\n")


def test_send_over_implicit_tls(make_mailer, fake_smtp):
    mailer = make_mailer()
    mailer.send_contact_message("Jana", "jana@example.cz", "Ahoj")

    (smtp,) = fake_smtp.instances
    assert (smtp.host, smtp.port) == ("smtp.example.cz", 465)
    _assert_verifying_context(smtp.context)
    assert "starttls" not in smtp.calls
    assert ("login", "web@glowbyhanka.cz", "app-password") in smtp.calls
    (msg,) = smtp.messages
    assert msg["To"] == "hanka@glowbyhanka.cz"
    assert msg["From"] == "web@glowbyhanka.cz"
    assert msg["Reply-To"] == "jana@example.cz"


def test_send_with_starttls(make_mailer, fake_smtp):
    mailer = make_mailer(smtp_port=587)
    mailer.send_contact_message("Jana", "jana@example.cz", "Ahoj")

    (smtp,) = fake_smtp.instances
    assert smtp.port == 587
    assert smtp.calls[0] == "starttls"
    _assert_verifying_context(smtp.context)
    assert len(smtp.messages) == 1


def test_send_without_credentials_skips_login(make_mailer, fake_smtp):
    mailer = make_mailer(smtp_user=None, smtp_password=None, smtp_from="web@glowbyhanka.cz")
    mailer.send_contact_message("Jana", "jana@example.cz", "Ahoj")

    (smtp,) = fake_smtp.instances
    assert not any(isinstance(call, tuple) and call[0] == "login" for call in smtp.calls)
    assert len(smtp.messages) == 1


def test_recipient_defaults_to_sender(make_mailer, fake_smtp):
    mailer = make_mailer(contact_email=None)
    mailer.send_contact_message("Jana", "jana@example.cz", "Ahoj")

    (msg,) = fake_smtp.instances[0].messages
    assert msg["To"] == "web@glowbyhanka.cz"


def test_unconfigured_sender(make_mailer, fake_smtp):
    mailer = make_mailer(smtp_user=None, smtp_from=None, contact_email=None)
    with pytest.raises(EmailDeliveryError):
        mailer.send_contact_message("Jana", "jana@example.cz", "Ahoj")
    assert fake_smtp.instances == []


def test_smtp_failure(make_mailer, fake_smtp):
    fake_smtp.fail_on_send = True
    mailer = make_mailer()
    with pytest.raises(EmailDeliveryError):
        mailer.send_contact_message("Jana", "jana@example.cz", "Ahoj")


def test_unbuildable_message_is_a_delivery_failure(make_mailer, fake_smtp):
    mailer = make_mailer()
    with pytest.raises(EmailDeliveryError):
        mailer.send_contact_message("Jana", "jana@example.cz\r\nBcc: x@example.cz", "Ahoj")
    assert all(not smtp.messages for smtp in fake_smtp.instances)


def test_connection_failure(make_mailer, monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    mailer = make_mailer()
    monkeypatch.setattr(mailer, "smtp_ssl_class", refuse)
    with pytest.raises(EmailDeliveryError):
        mailer.send_contact_message("Jana", "jana@example.cz", "Ahoj")


def test_verify_connection(make_mailer, fake_smtp):
    assert make_mailer().verify() is True

    (smtp,) = fake_smtp.instances
    assert ("login", "web@glowbyhanka.cz", "app-password") in smtp.calls
    assert "noop" in smtp.calls
    assert smtp.messages == []


def test_verify_reports_failure(make_mailer, monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    mailer = make_mailer()
    monkeypatch.setattr(mailer, "smtp_ssl_class", refuse)
    assert mailer.verify() is False


def test_verify_unconfigured(make_mailer, fake_smtp):
    assert make_mailer(smtp_user=None, smtp_from=None, contact_email=None).verify() is False
    assert fake_smtp.instances == []

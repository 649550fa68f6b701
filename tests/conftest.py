import smtplib
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from glowfolio.api import create_app
from glowfolio.auth import create_access_token
from glowfolio.config import Settings
from glowfolio.database import Category
from glowfolio.mailer import EmailDeliveryError
from glowfolio.seed import seed_admin_user, seed_categories

TEST_SECRET = "test-secret-key-long-enough-for-hs256-signing"


class FakeMailer:
    """Records contact messages instead of talking to an SMTP relay."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_contact_message(self, name, email, message):
        if self.fail:
            raise EmailDeliveryError("relay unavailable")
        self.sent.append({"name": name, "email": email, "message": message})


class FakeSMTP:
    """Stands in for smtplib.SMTP / SMTP_SSL and records what happens."""

    instances = []
    fail_on_send = False

    def __init__(self, host, port, timeout=None, context=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.context = context
        self.calls = []
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.calls.append("quit")
        return False

    def starttls(self, context=None):
        self.context = context
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def noop(self):
        self.calls.append("noop")
        return (250, b"OK")

    def send_message(self, msg):
        if FakeSMTP.fail_on_send:
            raise smtplib.SMTPRecipientsRefused({})
        self.messages.append(msg)

    def close(self):
        self.calls.append("close")


@pytest.fixture
def fake_smtp():
    FakeSMTP.instances = []
    FakeSMTP.fail_on_send = False
    return FakeSMTP


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        environment="test",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        upload_dir=str(tmp_path / "uploads"),
        jwt_secret=TEST_SECRET,
        admin_username="admin",
        admin_password="admin123",
        admin_email="admin@glowbyhanka.cz",
        smtp_from="web@glowbyhanka.cz",
        contact_email="hanka@glowbyhanka.cz",
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    ctx = application.state.context
    session = ctx.session_factory()
    try:
        seed_categories(session)
        seed_admin_user(session, settings)
    finally:
        session.close()
    ctx.mailer = FakeMailer()
    return application


@pytest.fixture
def ctx(app):
    return app.state.context


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(ctx):
    session = ctx.session_factory()
    yield session
    session.close()


@pytest.fixture
def mailer(ctx):
    return ctx.mailer


@pytest.fixture
def admin(db_session, settings):
    from glowfolio.models.user import User

    return db_session.query(User).filter(User.username == settings.admin_username).one()


@pytest.fixture
def categories(db_session):
    return db_session.query(Category).order_by(Category.display_order).all()


@pytest.fixture
def auth_headers(admin, settings):
    return {"Authorization": f"Bearer {create_access_token(admin, settings)}"}


@pytest.fixture
def expired_headers(admin):
    issued = datetime.now(timezone.utc) - timedelta(hours=25)
    token = jwt.encode(
        {
            "sub": str(admin.id),
            "id": admin.id,
            "username": admin.username,
            "email": admin.email,
            "iat": issued,
            "exp": issued + timedelta(hours=24),
        },
        TEST_SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def upload(client, auth_headers):
    """POST one image to the admin upload endpoint."""

    def _upload(category_id, filename="photo.jpg", content=b"\xff\xd8\xffimage", mime="image/jpeg"):
        data = {} if category_id is None else {"categoryId": str(category_id)}
        return client.post(
            "/api/admin/images",
            headers=auth_headers,
            files={"image": (filename, content, mime)},
            data=data,
        )

    return _upload

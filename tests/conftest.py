"""
Test configuration and fixtures.

Provides:
- Temporary SQLite database (tables created once, emptied after each test)
- JWT session cookies for client and ops users
- HTTPX AsyncClient with the CSRF header
- Stubs for PDF rendering and artifact storage
"""
import os
import tempfile
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

_TMP_DIR = tempfile.mkdtemp(prefix="probatedesk-tests-")

# Settings are read at import time, so configure the environment first
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOCAL_STORAGE_PATH"] = os.path.join(_TMP_DIR, "artifacts")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["RESEND_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["REDIS_URL"] = ""
os.environ["APP_URL"] = "https://portal.test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from probatedesk.core.deps import COOKIE_NAME, get_db
from probatedesk.core.rate_limit import get_resume_link_throttle, limiter
from probatedesk.core.security import create_session_token
from probatedesk.db.base import Base
from probatedesk.db.enums import RightFitStatus, Role
from probatedesk.db.models import IntakeDraft, Matter, User
from probatedesk.db.session import SessionLocal, engine
from probatedesk.main import app
from probatedesk.services import email_service, matter_service, pdf_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def _schema() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on the test database.

    App code commits freely; every table is emptied after the test.
    """
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> Generator[None, None, None]:
    limiter.reset()
    get_resume_link_throttle().reset()
    yield


# =============================================================================
# Collaborator Stubs
# =============================================================================

@dataclass
class SentEmail:
    to: str
    template: str
    variables: dict


@pytest.fixture(autouse=True)
def outbox(monkeypatch) -> list[SentEmail]:
    """Capture outgoing emails instead of logging them."""
    sent: list[SentEmail] = []

    def fake_send(*, to, template, variables=None, subject=None):
        sent.append(SentEmail(to=to, template=template, variables=variables or {}))
        return email_service.SendResult(success=True, message_id=f"msg-{len(sent)}")

    monkeypatch.setattr(email_service, "send_template_email", fake_send)
    return sent


@pytest.fixture(autouse=True)
def fake_pdf(monkeypatch) -> list[tuple[str, dict]]:
    """Replace reportlab rendering with a fixed byte string; records calls."""
    calls: list[tuple[str, dict]] = []

    def fake_render(kind, data):
        calls.append((kind, data))
        return b"%PDF-1.4 test"

    monkeypatch.setattr(pdf_service, "render", fake_render)
    return calls


# =============================================================================
# Users + Matters
# =============================================================================

def make_user(db: Session, role: Role = Role.CLIENT, email: str | None = None) -> User:
    user = User(
        email=email or f"user-{uuid.uuid4().hex[:8]}@test.com",
        display_name="Test User",
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def intake_answers(email: str = "executor@test.com", had_will: str = "yes") -> dict:
    return {
        "welcome": {"email": email},
        "executor": {"fullName": "Pat Executor", "phone": "+16045550100", "address": "1 Main St"},
        "deceased": {"fullName": "Alex Deceased", "hadWill": had_will, "dateOfDeath": "2026-01-02"},
        "will": {"dated": "2019-05-01"},
        "beneficiaries": [
            {"fullName": "Sam Heir", "relationship": "child"},
        ],
    }


@pytest.fixture
def user_factory(db: Session):
    """Create extra users: user_factory(Role.CLIENT, email=...)."""
    def factory(role: Role = Role.CLIENT, email: str | None = None) -> User:
        return make_user(db, role, email)
    return factory


@pytest.fixture
def intake_payload() -> dict:
    return intake_answers()


@pytest.fixture
def answers_factory():
    """Build intake answers: answers_factory(email=..., had_will="no")."""
    return intake_answers


@pytest.fixture
def client_user(db: Session) -> User:
    return make_user(db, Role.CLIENT)


@pytest.fixture
def ops_user(db: Session) -> User:
    return make_user(db, Role.OPS)


@pytest.fixture
def matter(db: Session, client_user: User) -> Matter:
    """An eligible matter owned by client_user with a saved (unsubmitted) draft."""
    m = matter_service.create_matter(db, user_id=client_user.id)
    m.right_fit_status = RightFitStatus.ELIGIBLE.value
    db.add(IntakeDraft(matter_id=m.id, email="executor@test.com", payload=intake_answers()))
    db.commit()
    db.refresh(m)
    return m


# =============================================================================
# Client Fixtures
# =============================================================================

def _cookie_for(user: User) -> dict[str, str]:
    return {COOKIE_NAME: create_session_token(user.id, user.role, user.token_version)}


@pytest.fixture
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient (CSRF header set) for public endpoints."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Requested-With": "XMLHttpRequest"},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
async def authed_client(db: Session, client_user: User) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient signed in as client_user."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=_cookie_for(client_user),
        headers={"X-Requested-With": "XMLHttpRequest"},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
async def ops_client(db: Session, ops_user: User) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient signed in as ops_user."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=_cookie_for(ops_user),
        headers={"X-Requested-With": "XMLHttpRequest"},
    ) as c:
        yield c

    app.dependency_overrides.clear()

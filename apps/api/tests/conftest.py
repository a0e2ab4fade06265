"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read at import time by the app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="actas-test-uploads-"))
os.environ.setdefault("LINK_SIGNING_SECRET", "test-link-signing-secret")
os.environ.setdefault("PUBLIC_BASE_URL", "https://actas.example.test")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from actas_api.actas import ActaInput, ActaService  # noqa: E402
from actas_api.attachments import AttachmentService  # noqa: E402
from actas_api.audit import AuditTrail  # noqa: E402
from actas_api.auth.session import SessionUser, issue_session_token  # noqa: E402
from actas_api.db.base import Base  # noqa: E402
from actas_api.db.session import get_db  # noqa: E402
from actas_api.models import User  # noqa: E402
from actas_api.notifications import NotificationResult, Notifier, get_notifier  # noqa: E402
from actas_api.security.link_signer import LinkSigner, SigningConfig, get_link_signer  # noqa: E402
from actas_api.settings import get_settings  # noqa: E402
from actas_api.storage import LocalBlobStore, get_blob_store  # noqa: E402
from actas_api.workflow import ApprovalWorkflow  # noqa: E402

TEST_SIGNING_SECRET = "test-link-signing-secret"

# Smallest valid PNG header is enough: only the declared type and size are checked
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class RecordingNotifier(Notifier):
    """Collects notices instead of sending e-mail."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.raise_for = set()

    def notify_participant(self, email, notice):
        if email in self.raise_for:
            raise RuntimeError("mail relay exploded")
        if email in self.fail_for:
            return NotificationResult(ok=False, error="rejected by provider")
        self.sent.append((email, notice))
        return NotificationResult(ok=True, message_id=f"msg-{len(self.sent)}")

    def notices_for(self, email):
        return [notice for sent_to, notice in self.sent if sent_to == email]


@pytest.fixture(scope="function")
def db():
    """SQLite in-memory database session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def signer() -> LinkSigner:
    return LinkSigner(SigningConfig(secret=TEST_SIGNING_SECRET))


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(str(tmp_path / "blobs"))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


def _user(db: Session, name: str, email: str, role: str = "user") -> User:
    user = User(name=name, email=email, role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db: Session) -> User:
    return _user(db, "Ana Admin", "ana.admin@example.com", role="admin")


@pytest.fixture
def creator_user(db: Session) -> User:
    return _user(db, "Carlos Creador", "carlos@example.com")


@pytest.fixture
def other_user(db: Session) -> User:
    return _user(db, "Olga Otra", "olga@example.com")


@pytest.fixture
def internal_user(db: Session) -> User:
    return _user(db, "Ines Interna", "ines@example.com")


def session_for(user: User) -> SessionUser:
    return SessionUser(user_id=user.id, role=user.role)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_session_token(user.id, user.role)}"}


@pytest.fixture
def audit(db: Session) -> AuditTrail:
    return AuditTrail(db, correlation_id="test-correlation-id")


@pytest.fixture
def attachments(db: Session, blob_store: LocalBlobStore, settings) -> AttachmentService:
    return AttachmentService(db, blob_store, settings)


@pytest.fixture
def acta_service(db: Session, audit: AuditTrail, attachments: AttachmentService) -> ActaService:
    return ActaService(db, audit, attachments)


@pytest.fixture
def workflow(db, signer, notifier, attachments, audit, settings) -> ApprovalWorkflow:
    return ApprovalWorkflow(db, signer, notifier, attachments, audit, settings)


def acta_payload(**overrides) -> ActaInput:
    """Two external participants requiring approval and one commitment."""
    data = {
        "date": date(2026, 3, 14),
        "objective": "Revisión trimestral de impuestos",
        "body": "<p>Se revisaron las declaraciones pendientes.</p>",
        "participants": [
            {"name": "Pedro Externo", "email": "pedro@client.example", "title": "Contador"},
            {"name": "Lucia Externa", "email": "lucia@client.example"},
        ],
        "client_ids": [7],
        "activity_ids": [3],
        "commitments": [{"description": "Enviar balance", "due_date": "2026-04-01", "assignee_index": 0}],
    }
    data.update(overrides)
    return ActaInput.model_validate(data)


@pytest.fixture
def draft_acta(acta_service: ActaService, creator_user: User):
    return acta_service.create(acta_payload(), session_for(creator_user))


@pytest.fixture
def client(db, signer, blob_store, notifier):
    """Test client with database, storage, signer and notifier overridden."""
    from actas_api.main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_link_signer] = lambda: signer
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

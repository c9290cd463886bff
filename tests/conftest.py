import io
import threading

import pytest
from fastapi.testclient import TestClient
from reportlab.pdfgen import canvas
from sqlalchemy.orm import sessionmaker

from app import models, schemas
from app.database import Base, get_db, get_engine
from app.dependencies import get_blob_store, get_notifier, get_renderer
from app.main import app
from app.services.completion import CompletionCoordinator
from app.services.document_service import DocumentService
from app.services.locks import DocumentLocks
from app.services.outbox import SideEffectDispatcher
from app.services.pdf_service import PdfRenderer
from app.services.storage import LocalBlobStore
from app.services.workflow import WorkflowService

# 1x1 black PNG
PNG_BASE64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="

LETTER = (612, 792)
A4_LANDSCAPE = (842, 595)


def make_pdf(*page_sizes) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer)
    for number, size in enumerate(page_sizes):
        c.setPageSize(size)
        c.drawString(72, 72, f"Page {number + 1}")
        c.showPage()
    c.save()
    return buffer.getvalue()


class CountingRenderer(PdfRenderer):
    def __init__(self, blob_store):
        super().__init__(blob_store)
        self.composite_calls = 0
        self._lock = threading.Lock()

    def composite_fields(self, artifact_ref, placed_fields):
        with self._lock:
            self.composite_calls += 1
        return super().composite_fields(artifact_ref, placed_fields)


class RecordingNotifier:
    def __init__(self):
        self.signing_requests = []
        self.completions = []
        self._lock = threading.Lock()

    def notify_signing_request(self, signer, document, sender):
        with self._lock:
            self.signing_requests.append((signer.email, document.id, signer.access_token))

    def notify_completion(self, owner, document):
        with self._lock:
            self.completions.append((owner.email, document.id))

    def token_for(self, email):
        return next(token for to, _, token in self.signing_requests if to == email)


@pytest.fixture
def engine(tmp_path):
    engine = get_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "storage")


@pytest.fixture
def renderer(blob_store):
    return CountingRenderer(blob_store)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def locks():
    return DocumentLocks()


@pytest.fixture
def sample_pdf():
    return make_pdf(LETTER, A4_LANDSCAPE)


@pytest.fixture
def owner(db):
    user = models.User(email="owner@example.com", name="Olive Owner")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def services(renderer, blob_store, notifier, locks):
    """Build (documents, workflow, coordinator) bound to one session."""

    def build(session, decline_policy=None):
        dispatcher = SideEffectDispatcher(session, renderer, blob_store, notifier)
        return (
            DocumentService(session, renderer, blob_store),
            WorkflowService(session, renderer, dispatcher, decline_policy=decline_policy, locks=locks),
            CompletionCoordinator(session, dispatcher, locks=locks),
        )

    return build


@pytest.fixture
def make_document(db, owner, services, sample_pdf):
    """A draft with one signature field per signer, stacked down page 1."""

    def build(workflow_type="parallel", signers=(("alice@example.com", "Alice"),)):
        documents, _, _ = services(db)
        document = documents.upload(owner, "contract.pdf", sample_pdf, workflow_type=workflow_type)
        for index, (email, name) in enumerate(signers):
            documents.add_signer(document.id, owner, schemas.SignerCreate(email=email, name=name))
            documents.add_field(
                document.id,
                owner,
                schemas.FieldCreate(type="signature", page=0, x=50, y=100 + index * 80, width=200, height=60, signer_email=email),
            )
        return document

    return build


@pytest.fixture
def png_base64():
    return PNG_BASE64


@pytest.fixture
def token_of(session_factory):
    def lookup(document_id, email):
        with session_factory() as session:
            signer = (
                session.query(models.Signer)
                .filter(models.Signer.document_id == document_id, models.Signer.email == email)
                .one()
            )
            return signer.access_token

    return lookup


@pytest.fixture
def client(session_factory, blob_store, renderer, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_renderer] = lambda: renderer
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()

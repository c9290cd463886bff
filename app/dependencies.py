from fastapi import Depends
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .services.completion import CompletionCoordinator
from .services.document_service import DocumentService
from .services.notifier import LoggingNotifier
from .services.outbox import SideEffectDispatcher
from .services.pdf_service import PdfRenderer
from .services.storage import LocalBlobStore
from .services.workflow import WorkflowService


def get_blob_store():
    return LocalBlobStore(settings.storage_dir)


def get_renderer(blob_store=Depends(get_blob_store)):
    return PdfRenderer(blob_store)


def get_notifier():
    return LoggingNotifier(settings.public_base_url)


def get_dispatcher(
    db: Session = Depends(get_db),
    renderer=Depends(get_renderer),
    blob_store=Depends(get_blob_store),
    notifier=Depends(get_notifier),
):
    return SideEffectDispatcher(db, renderer, blob_store, notifier)


def get_document_service(
    db: Session = Depends(get_db),
    renderer=Depends(get_renderer),
    blob_store=Depends(get_blob_store),
):
    return DocumentService(db, renderer, blob_store)


def get_workflow_service(
    db: Session = Depends(get_db),
    renderer=Depends(get_renderer),
    dispatcher=Depends(get_dispatcher),
):
    return WorkflowService(db, renderer, dispatcher)


def get_completion_coordinator(db: Session = Depends(get_db), dispatcher=Depends(get_dispatcher)):
    return CompletionCoordinator(db, dispatcher)

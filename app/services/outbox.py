"""Side effects queued inside a transaction and run after it commits.

Nothing here may undo or fail a committed transition: every handler failure
is logged and dropped.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from .. import models
from .notifier import Notifier
from .pdf_service import DocumentRenderer
from .placement import place_document_signatures
from .storage import BlobStore, signed_ref

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SigningRequested:
    document_id: int
    signer_id: int


@dataclass(frozen=True)
class DocumentCompleted:
    document_id: int


class Outbox:
    def __init__(self):
        self._events = []

    def add(self, event) -> None:
        self._events.append(event)

    def drain(self) -> list:
        events, self._events = self._events, []
        return events

    def __len__(self):
        return len(self._events)


class SideEffectDispatcher:
    def __init__(self, db: Session, renderer: DocumentRenderer, blob_store: BlobStore, notifier: Notifier):
        self.db = db
        self.renderer = renderer
        self.blob_store = blob_store
        self.notifier = notifier

    def dispatch(self, outbox: Outbox) -> None:
        for event in outbox.drain():
            if isinstance(event, DocumentCompleted):
                self._attempt("render signed artifact", event, self._render)
                self._attempt("notify owner of completion", event, self._notify_completion)
            elif isinstance(event, SigningRequested):
                self._attempt("notify signer", event, self._notify_signer)
            else:
                logger.error("Dropping unknown side effect %r", event)

    def _attempt(self, what, event, handler) -> bool:
        try:
            handler(event)
        except Exception:
            logger.exception("Failed to %s for document %s", what, event.document_id)
            return False
        return True

    def _render(self, event: DocumentCompleted):
        document = self.db.get(models.Document, event.document_id)
        placed = place_document_signatures(document, self.renderer)
        artifact = self.renderer.composite_fields(document.file_path, placed)
        self.blob_store.write(signed_ref(document.id), artifact)
        logger.info("Rendered %d fields onto document %s", len(placed), document.id)

    def _notify_completion(self, event: DocumentCompleted):
        document = self.db.get(models.Document, event.document_id)
        self.notifier.notify_completion(document.owner, document)

    def _notify_signer(self, event: SigningRequested):
        signer = self.db.get(models.Signer, event.signer_id)
        document = signer.document
        self.notifier.notify_signing_request(signer, document, document.owner)

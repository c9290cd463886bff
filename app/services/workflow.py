"""Document lifecycle: send, decline, cancel, and the read-side views."""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from .. import models
from ..config import DeclinePolicy, settings
from ..database import unit_of_work
from ..errors import NotFoundError, ValidationFailed, WorkflowStateError
from . import audit
from .document_service import load_owned_document
from .field_validation import validate_for_send
from .locks import document_locks
from .outbox import Outbox, SigningRequested
from .sequencing import can_sign, eligible_signers

logger = logging.getLogger(__name__)

PENDING = models.DocumentStatus.PENDING.value


def signer_by_token(db: Session, access_token: str) -> models.Signer:
    signer = db.query(models.Signer).filter(models.Signer.access_token == access_token).first()
    if signer is None:
        raise NotFoundError("Invalid signing link")
    return signer


def lock_document_row(db: Session, document_id: int) -> models.Document:
    document = (
        db.query(models.Document)
        .filter(models.Document.id == document_id)
        .with_for_update()
        .first()
    )
    if document is None:
        raise NotFoundError("Document not found")
    return document


def status_sort_key(signer):
    return (signer.signing_order is None, signer.signing_order or 0, signer.email)


def decline_cancels_document(document, policy: DeclinePolicy) -> bool:
    statuses = [signer.status for signer in document.signers]
    if policy == DeclinePolicy.CANCEL_ON_DECLINE:
        return models.SignerStatus.DECLINED.value in statuses
    if policy == DeclinePolicy.CANCEL_WHEN_ALL_DECLINED:
        return bool(statuses) and all(status == models.SignerStatus.DECLINED.value for status in statuses)
    return False


class WorkflowService:
    def __init__(self, db: Session, renderer, dispatcher, decline_policy=None, locks=document_locks):
        self.db = db
        self.renderer = renderer
        self.dispatcher = dispatcher
        self.decline_policy = DeclinePolicy(decline_policy or settings.decline_policy)
        self.locks = locks

    def send(self, document_id: int, actor, ip_address=None, user_agent=None) -> dict:
        document = load_owned_document(self.db, document_id, actor)
        outbox = Outbox()

        with self.locks.hold(document.id):
            self.db.expire_all()
            with unit_of_work(self.db):
                document = lock_document_row(self.db, document_id)
                if document.status != models.DocumentStatus.DRAFT.value:
                    raise WorkflowStateError(f"Document is already {document.status}")

                violations = validate_for_send(document, self.renderer)
                if violations:
                    raise ValidationFailed("Document is not ready to be sent", violations)

                document.status = PENDING
                audit.record_action(self.db, document.id, audit.SENT, ip_address=ip_address, user_agent=user_agent)
                for signer in eligible_signers(document):
                    outbox.add(SigningRequested(document.id, signer.id))

        notified = len(outbox)
        logger.info("Document %s sent (%s), notifying %d signer(s)", document_id, document.workflow_type, notified)
        self.dispatcher.dispatch(outbox)
        return {"document_id": document_id, "status": PENDING, "signers_notified": notified}

    def decline(self, access_token: str, reason=None, ip_address=None, user_agent=None) -> dict:
        signer = signer_by_token(self.db, access_token)
        document_id, signer_id = signer.document_id, signer.id

        with self.locks.hold(document_id):
            self.db.expire_all()
            with unit_of_work(self.db):
                document = lock_document_row(self.db, document_id)
                signer = self.db.get(models.Signer, signer_id)
                if signer.status != models.SignerStatus.PENDING.value:
                    raise WorkflowStateError(f"You have already {signer.status} this document")
                if document.status != PENDING:
                    raise WorkflowStateError(f"Document is {document.status}")

                signer.status = models.SignerStatus.DECLINED.value
                signer.declined_at = datetime.now(timezone.utc)
                signer.decline_reason = reason
                signer.ip_address = ip_address
                signer.user_agent = user_agent
                audit.record_action(self.db, document.id, audit.DECLINED, signer.id, ip_address, user_agent)

                if decline_cancels_document(document, self.decline_policy):
                    document.status = models.DocumentStatus.CANCELLED.value
                    audit.record_action(self.db, document.id, audit.CANCELLED, signer.id, ip_address, user_agent)
                document_status = document.status

        logger.info("Signer %s declined document %s; document is %s", signer_id, document_id, document_status)
        return {"signer_status": models.SignerStatus.DECLINED.value, "document_status": document_status}

    def cancel(self, document_id: int, actor, ip_address=None, user_agent=None) -> models.Document:
        load_owned_document(self.db, document_id, actor)

        with self.locks.hold(document_id):
            self.db.expire_all()
            with unit_of_work(self.db):
                document = lock_document_row(self.db, document_id)
                if document.status != PENDING:
                    raise WorkflowStateError(f"Only pending documents can be cancelled; this one is {document.status}")
                document.status = models.DocumentStatus.CANCELLED.value
                audit.record_action(self.db, document.id, audit.CANCELLED, ip_address=ip_address, user_agent=user_agent)

        logger.info("Document %s cancelled by its owner", document_id)
        self.db.refresh(document)
        return document

    def get_status(self, document_id: int, actor) -> dict:
        document = load_owned_document(self.db, document_id, actor)
        signers = sorted(document.signers, key=status_sort_key)

        def count(status):
            return sum(1 for signer in signers if signer.status == status.value)

        return {
            "document_status": document.status,
            "workflow_type": document.workflow_type,
            "signers": signers,
            "total_signers": len(signers),
            "signed_count": count(models.SignerStatus.SIGNED),
            "pending_count": count(models.SignerStatus.PENDING),
            "declined_count": count(models.SignerStatus.DECLINED),
        }

    def get_signing_session(self, access_token: str) -> dict:
        signer = signer_by_token(self.db, access_token)
        document = signer.document

        if signer.status != models.SignerStatus.PENDING.value:
            raise WorkflowStateError(f"You have already {signer.status} this document")
        if document.status != PENDING:
            raise WorkflowStateError(f"Document is {document.status}")
        if not can_sign(signer, document.signers, document.workflow_type):
            raise WorkflowStateError("It is not your turn to sign yet")

        return {
            "document": document,
            "signer": signer,
            "fields": [field for field in document.fields if field.signer_email == signer.email],
            "signatures": list(signer.signatures),
        }

"""Signature submission and exactly-once document completion.

A submission is one transaction, taken under the document's lock: insert the
signatures, mark the signer signed, re-read every signer and, if all have
signed, complete the document. Rendering and notifications are queued on an
outbox and run only after the commit.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..database import unit_of_work
from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationFailed, Violation, WorkflowStateError
from . import audit
from .field_validation import validate_signature_submission
from .locks import document_locks
from .outbox import DocumentCompleted, Outbox, SigningRequested
from .sequencing import can_sign, unlocked_by
from .workflow import lock_document_row, signer_by_token

logger = logging.getLogger(__name__)

SIGNED = models.SignerStatus.SIGNED.value


def ensure_can_submit(signer: models.Signer, document: models.Document) -> None:
    if signer.status != models.SignerStatus.PENDING.value:
        raise WorkflowStateError(f"You have already {signer.status} this document")
    if document.status != models.DocumentStatus.PENDING.value:
        raise WorkflowStateError(f"Document is {document.status}")
    if document.workflow_type == models.WorkflowType.SEQUENTIAL.value:
        if not can_sign(signer, document.signers, document.workflow_type):
            raise WorkflowStateError("It is not your turn to sign yet")


class CompletionCoordinator:
    def __init__(self, db: Session, dispatcher, locks=document_locks):
        self.db = db
        self.dispatcher = dispatcher
        self.locks = locks

    def submit_signatures(self, access_token: str, inputs, ip_address=None, user_agent=None) -> bool:
        """Record a signer's batch of signatures; True when it completed the document."""
        signer = signer_by_token(self.db, access_token)
        ensure_can_submit(signer, signer.document)

        document_id, signer_id = signer.document_id, signer.id
        outbox = Outbox()

        with self.locks.hold(document_id):
            # whatever committed while we waited for the lock must be visible
            self.db.expire_all()
            try:
                with unit_of_work(self.db):
                    document = lock_document_row(self.db, document_id)
                    signer = self.db.get(models.Signer, signer_id)
                    ensure_can_submit(signer, document)

                    self._insert_signatures(document, signer, inputs, ip_address, user_agent)

                    signer.status = SIGNED
                    signer.signed_at = datetime.now(timezone.utc)
                    signer.ip_address = ip_address
                    signer.user_agent = user_agent
                    audit.record_action(self.db, document_id, audit.SIGNED, signer_id, ip_address, user_agent)
                    self.db.flush()

                    signers = self.db.query(models.Signer).filter(models.Signer.document_id == document_id).all()
                    all_signed = all(s.status == SIGNED for s in signers)

                    if all_signed:
                        document.status = models.DocumentStatus.COMPLETED.value
                        document.completed_at = datetime.now(timezone.utc)
                        audit.record_action(self.db, document_id, audit.COMPLETED)
                        outbox.add(DocumentCompleted(document_id))
                    else:
                        for following in unlocked_by(signer, signers, document.workflow_type):
                            outbox.add(SigningRequested(document_id, following.id))
            except IntegrityError as exc:
                raise ConflictError("A signature already exists for this field") from exc

        logger.info("Signer %s signed document %s (completed=%s)", signer_id, document_id, all_signed)
        self.dispatcher.dispatch(outbox)
        return all_signed

    def _insert_signatures(self, document, signer, inputs, ip_address, user_agent):
        fields = {field.id: field for field in document.fields}
        seen = set()
        resolved = []
        for item in inputs:
            field = fields.get(item.field_id)
            if field is None:
                raise NotFoundError(f"Field {item.field_id} not found on this document")
            if field.signer_email != signer.email:
                raise AuthorizationError(f"Field {item.field_id} is not assigned to you")
            if item.field_id in seen:
                raise ConflictError(f"Field {item.field_id} appears more than once in this submission")
            seen.add(item.field_id)
            resolved.append((item, field))

        existing = (
            self.db.query(models.Signature.field_id)
            .filter(models.Signature.signer_id == signer.id, models.Signature.field_id.in_(sorted(seen)))
            .first()
        )
        if existing is not None:
            raise ConflictError(f"Field {existing.field_id} has already been signed")

        violations = []
        for item, field in resolved:
            violations.extend(validate_signature_submission(item, field))
        for field in fields.values():
            if field.required and field.signer_email == signer.email and field.id not in seen:
                violations.append(Violation("Required field was not filled", field.id))
        if violations:
            raise ValidationFailed("Signature submission rejected", violations)

        now = datetime.now(timezone.utc)
        for item, field in resolved:
            signature_type = models.SignatureType(item.signature_type).value
            self.db.add(
                models.Signature(
                    signer_id=signer.id,
                    field_id=field.id,
                    signature_type=signature_type,
                    signature_data=item.signature_data or item.text_value or "",
                    text_value=item.text_value,
                    font_family=item.font_family,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    signed_at=now,
                )
            )

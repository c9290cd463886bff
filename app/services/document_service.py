"""Upload and draft editing of documents, signers and fields."""
import logging
import re
import secrets
import uuid

from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import settings
from ..database import unit_of_work
from ..errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationFailed,
    Violation,
    WorkflowStateError,
)
from .field_validation import validate_field
from .pdf_service import DocumentRenderer, UnreadableDocument
from .storage import UPLOADS_FOLDER, BlobStore, signed_ref

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
NULLABLE_FIELD_ATTRIBUTES = {"signer_email", "properties"}


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    return email.strip().lower() or None


def new_access_token() -> str:
    return secrets.token_hex(32)


def load_owned_document(db: Session, document_id: int, actor) -> models.Document:
    document = db.get(models.Document, document_id)
    if document is None:
        raise NotFoundError("Document not found")
    if document.user_id != actor.id:
        raise AuthorizationError("You do not own this document")
    return document


def artifact_for_download(document: models.Document, blob_store) -> tuple[str, str]:
    """(blob ref, download filename): the signed copy once completed, else the upload."""
    filename = document.filename or f"document_{document.id}.pdf"
    if document.status == models.DocumentStatus.COMPLETED.value:
        ref = signed_ref(document.id)
        if blob_store.exists(ref):
            return ref, f"signed_{filename}"
    return document.file_path, filename


class DocumentService:
    def __init__(self, db: Session, renderer: DocumentRenderer, blob_store: BlobStore):
        self.db = db
        self.renderer = renderer
        self.blob_store = blob_store

    # --- documents -----------------------------------------------------------

    def upload(self, owner, filename: str, content: bytes, title=None, workflow_type=models.WorkflowType.PARALLEL):
        if not content:
            raise ValidationFailed("Upload rejected", [Violation("The uploaded file is empty")])
        if len(content) > settings.max_upload_bytes:
            raise ValidationFailed(
                "Upload rejected",
                [Violation(f"The uploaded file exceeds {settings.max_upload_bytes} bytes")],
            )

        ref = f"{UPLOADS_FOLDER}/{uuid.uuid4()}_{filename or 'document.pdf'}"
        self.blob_store.write(ref, content)
        try:
            page_count = self.renderer.page_count(ref)
        except UnreadableDocument as exc:
            logger.warning("Rejected upload %s: %s", filename, exc)
            raise ValidationFailed("Upload rejected", [Violation("The uploaded file is not a readable PDF")]) from exc
        if page_count < 1:
            raise ValidationFailed("Upload rejected", [Violation("The uploaded PDF has no pages")])

        with unit_of_work(self.db):
            document = models.Document(
                user_id=owner.id,
                title=title or filename or "Untitled document",
                filename=filename,
                file_path=ref,
                page_count=page_count,
                status=models.DocumentStatus.DRAFT.value,
                workflow_type=models.WorkflowType(workflow_type).value,
            )
            self.db.add(document)
        self.db.refresh(document)
        logger.info("Uploaded document %s (%d pages) for user %s", document.id, page_count, owner.id)
        return document

    def list_documents(self, owner) -> list[models.Document]:
        return (
            self.db.query(models.Document)
            .filter(models.Document.user_id == owner.id)
            .order_by(models.Document.id)
            .all()
        )

    def get_document(self, document_id: int, actor) -> models.Document:
        return load_owned_document(self.db, document_id, actor)

    def _load_draft(self, document_id: int, actor) -> models.Document:
        document = load_owned_document(self.db, document_id, actor)
        if document.status != models.DocumentStatus.DRAFT.value:
            raise WorkflowStateError(f"Document is {document.status}; only drafts can be edited")
        return document

    # --- signers -------------------------------------------------------------

    def add_signer(self, document_id: int, actor, data: schemas.SignerCreate) -> models.Signer:
        document = self._load_draft(document_id, actor)
        email = normalize_email(data.email)
        name = (data.name or "").strip()

        violations = []
        if not email or not EMAIL_PATTERN.match(email):
            violations.append(Violation(f"Invalid email address: {data.email!r}"))
        if not name:
            violations.append(Violation("Signer name is required"))
        sequential = document.workflow_type == models.WorkflowType.SEQUENTIAL.value
        if not sequential and data.signing_order is not None:
            violations.append(Violation(f"Signing order only applies to sequential workflows, not {document.workflow_type}"))
        if violations:
            raise ValidationFailed("Invalid signer", violations)

        if any(signer.email == email for signer in document.signers):
            raise ConflictError(f"{email} is already a signer of this document")

        signing_order = None
        if sequential:
            taken = {s.signing_order for s in document.signers if s.signing_order is not None}
            next_order = max(taken) + 1 if taken else 0
            if data.signing_order is None:
                signing_order = next_order
            elif data.signing_order in taken:
                raise ConflictError(f"Signing order {data.signing_order} is already taken")
            elif data.signing_order != next_order:
                raise ValidationFailed(
                    "Invalid signer",
                    [Violation(f"Signing order must be {next_order}, the next position in the chain")],
                )
            else:
                signing_order = data.signing_order

        with unit_of_work(self.db):
            signer = models.Signer(
                document_id=document.id,
                email=email,
                name=name,
                signing_order=signing_order,
                status=models.SignerStatus.PENDING.value,
                access_token=new_access_token(),
            )
            self.db.add(signer)
        self.db.refresh(signer)
        return signer

    def remove_signer(self, document_id: int, signer_id: int, actor) -> None:
        document = self._load_draft(document_id, actor)
        signer = next((s for s in document.signers if s.id == signer_id), None)
        if signer is None:
            raise NotFoundError("Signer not found")

        with unit_of_work(self.db):
            for field in document.fields:
                if field.signer_email == signer.email:
                    field.signer_email = None
            document.signers.remove(signer)

            # keep the sequential chain gapless so the next signer is always order + 1
            ordered = sorted(
                (s for s in document.signers if s.signing_order is not None),
                key=lambda s: s.signing_order,
            )
            for position, remaining in enumerate(ordered):
                remaining.signing_order = position

    # --- fields --------------------------------------------------------------

    def _check_field(self, document: models.Document, field: models.Field):
        if field.page < 0 or field.page >= document.page_count:
            raise ValidationFailed(
                "Invalid field",
                [Violation(f"Page {field.page} does not exist (document has {document.page_count} pages)", field.id)],
            )
        page_width, page_height = self.renderer.get_page_dimensions(document.file_path, field.page)
        violations = validate_field(field, page_width, page_height)
        if violations:
            raise ValidationFailed("Invalid field", violations)
        field.properties = schemas.parse_properties(field.type, field.properties).model_dump()

    def add_field(self, document_id: int, actor, data: schemas.FieldCreate) -> models.Field:
        document = self._load_draft(document_id, actor)
        field = models.Field(
            document_id=document.id,
            type=data.type.value,
            page=data.page,
            x=data.x,
            y=data.y,
            width=data.width,
            height=data.height,
            required=data.required,
            signer_email=normalize_email(data.signer_email),
            properties=data.properties,
        )
        self._check_field(document, field)

        with unit_of_work(self.db):
            self.db.add(field)
        self.db.refresh(field)
        return field

    def _get_draft_field(self, document_id: int, field_id: int, actor):
        document = self._load_draft(document_id, actor)
        field = next((f for f in document.fields if f.id == field_id), None)
        if field is None:
            raise NotFoundError("Field not found")
        return document, field

    def update_field(self, document_id: int, field_id: int, actor, data: schemas.FieldUpdate) -> models.Field:
        document, field = self._get_draft_field(document_id, field_id, actor)
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELD_ATTRIBUTES
        }
        if "type" in changes:
            changes["type"] = models.FieldType(changes["type"]).value
        if "signer_email" in changes:
            changes["signer_email"] = normalize_email(changes["signer_email"])

        # a failed check rolls the assignments back with the transaction
        with unit_of_work(self.db):
            for key, value in changes.items():
                setattr(field, key, value)
            self._check_field(document, field)
        self.db.refresh(field)
        return field

    def delete_field(self, document_id: int, field_id: int, actor) -> None:
        document, field = self._get_draft_field(document_id, field_id, actor)
        with unit_of_work(self.db):
            document.fields.remove(field)

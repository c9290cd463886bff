from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from .database import Base


class DocumentStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkflowType(str, enum.Enum):
    SINGLE = "single"
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


class SignerStatus(str, enum.Enum):
    PENDING = "pending"
    SIGNED = "signed"
    DECLINED = "declined"


class FieldType(str, enum.Enum):
    SIGNATURE = "signature"
    INITIALS = "initials"
    TEXT = "text"
    DATE = "date"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    TEXTAREA = "textarea"


class SignatureType(str, enum.Enum):
    DRAWN = "drawn"
    TYPED = "typed"
    UPLOADED = "uploaded"
    SELECTION = "selection"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    documents = relationship("Document", back_populates="owner")


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String, nullable=False)
    filename = Column(String)
    file_path = Column(String, nullable=False)
    page_count = Column(Integer, nullable=False, default=1)
    status = Column(String, nullable=False, default=DocumentStatus.DRAFT.value)
    workflow_type = Column(String, nullable=False, default=WorkflowType.PARALLEL.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    owner = relationship("User", back_populates="documents")
    signers = relationship(
        "Signer",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Signer.id",
    )
    fields = relationship(
        "Field",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Field.id",
    )
    audit_logs = relationship("AuditLog", back_populates="document", cascade="all, delete-orphan")


class Signer(Base):
    __tablename__ = "signers"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String, nullable=False)
    name = Column(String, nullable=False)
    signing_order = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default=SignerStatus.PENDING.value)
    access_token = Column(String, unique=True, index=True, nullable=False)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    decline_reason = Column(Text, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="signers")
    signatures = relationship("Signature", back_populates="signer", cascade="all, delete-orphan")


class Field(Base):
    __tablename__ = "fields"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False, default=FieldType.SIGNATURE.value)
    # 0-indexed page, geometry in points with a top-left origin
    page = Column(Integer, nullable=False, default=0)
    x = Column(Float, nullable=False)
    y = Column(Float, nullable=False)
    width = Column(Float, nullable=False)
    height = Column(Float, nullable=False)
    required = Column(Boolean, nullable=False, default=True)
    signer_email = Column(String, nullable=True)
    properties = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="fields")
    signatures = relationship("Signature", back_populates="field")


class Signature(Base):
    __tablename__ = "signatures"
    __table_args__ = (UniqueConstraint("signer_id", "field_id", name="uq_signature_signer_field"),)

    id = Column(Integer, primary_key=True, index=True)
    signer_id = Column(Integer, ForeignKey("signers.id", ondelete="CASCADE"), nullable=False, index=True)
    field_id = Column(Integer, ForeignKey("fields.id", ondelete="CASCADE"), nullable=False)
    signature_type = Column(String, nullable=False)
    signature_data = Column(Text, nullable=False)
    text_value = Column(Text, nullable=True)
    font_family = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=False)

    signer = relationship("Signer", back_populates="signatures")
    field = relationship("Field", back_populates="signatures")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"))
    signer_id = Column(Integer, nullable=True)
    action = Column(String)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())
    ip_address = Column(String)
    user_agent = Column(String)

    document = relationship("Document", back_populates="audit_logs")

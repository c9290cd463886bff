from datetime import datetime
from typing import Annotated, List, Literal, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, StringConstraints

from .models import DocumentStatus, FieldType, SignatureType, SignerStatus, WorkflowType

HexColor = Annotated[str, StringConstraints(pattern=r"^#[0-9A-Fa-f]{6}$")]


# --- Users -------------------------------------------------------------------

class UserCreate(BaseModel):
    email: str
    name: Optional[str] = None


class User(UserCreate):
    id: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# --- Field properties, one payload per field type -----------------------------

class FieldOption(BaseModel):
    label: str
    value: str


class BoxStyle(BaseModel):
    background_color: HexColor = "#FFFFFF"
    border_color: HexColor = "#000000"
    border_width: float = pydantic.Field(1, ge=0)


class SignatureProperties(BoxStyle):
    signature_color: HexColor = "#000000"


class TextProperties(BoxStyle):
    placeholder: str = ""
    font_family: str = "Helvetica"
    font_size: float = pydantic.Field(12, gt=0)
    text_color: HexColor = "#000000"
    text_align: Literal["left", "center", "right"] = "left"
    max_length: Optional[int] = pydantic.Field(255, gt=0)


class DateProperties(BoxStyle):
    date_format: Literal["MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD", "MM-DD-YYYY", "DD-MM-YYYY"] = "MM/DD/YYYY"
    font_family: str = "Helvetica"
    font_size: float = pydantic.Field(12, gt=0)
    text_color: HexColor = "#000000"
    text_align: Literal["left", "center", "right"] = "left"


class TextareaProperties(TextProperties):
    rows: int = pydantic.Field(3, ge=1, le=20)
    max_length: Optional[int] = pydantic.Field(1000, ge=1, le=10000)


class CheckboxProperties(BoxStyle):
    checked: bool = False
    check_color: HexColor = "#000000"
    style: Literal["checkmark", "x"] = "checkmark"


class ChoiceProperties(BoxStyle):
    options: List[FieldOption] = pydantic.Field(default_factory=list)
    selected_value: Optional[str] = None
    font_family: str = "Helvetica"
    font_size: float = pydantic.Field(12, gt=0)
    text_color: HexColor = "#000000"


class RadioProperties(ChoiceProperties):
    options: List[FieldOption] = pydantic.Field(
        default_factory=lambda: [
            FieldOption(label="Option 1", value="option1"),
            FieldOption(label="Option 2", value="option2"),
        ]
    )
    orientation: Literal["vertical", "horizontal"] = "vertical"
    option_spacing: float = pydantic.Field(20, ge=10, le=50)


class DropdownProperties(ChoiceProperties):
    options: List[FieldOption] = pydantic.Field(
        default_factory=lambda: [
            FieldOption(label="Option 1", value="option1"),
            FieldOption(label="Option 2", value="option2"),
            FieldOption(label="Option 3", value="option3"),
        ]
    )
    placeholder: str = "Select an option"


PROPERTIES_BY_TYPE: dict[FieldType, type[BoxStyle]] = {
    FieldType.SIGNATURE: SignatureProperties,
    FieldType.INITIALS: SignatureProperties,
    FieldType.TEXT: TextProperties,
    FieldType.DATE: DateProperties,
    FieldType.CHECKBOX: CheckboxProperties,
    FieldType.RADIO: RadioProperties,
    FieldType.DROPDOWN: DropdownProperties,
    FieldType.TEXTAREA: TextareaProperties,
}


def parse_properties(field_type: FieldType | str, raw: Optional[dict]) -> BoxStyle:
    """Build the typed property payload for a field; raises pydantic.ValidationError."""
    model = PROPERTIES_BY_TYPE[FieldType(field_type)]
    return model.model_validate(raw or {})


# --- Signers -------------------------------------------------------------------

class SignerCreate(BaseModel):
    email: str
    name: str
    signing_order: Optional[int] = pydantic.Field(None, ge=0)


class Signer(BaseModel):
    id: int
    document_id: int
    email: str
    name: str
    signing_order: Optional[int] = None
    status: SignerStatus
    signed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# --- Fields --------------------------------------------------------------------

class FieldCreate(BaseModel):
    type: FieldType = FieldType.SIGNATURE
    page: int = pydantic.Field(0, ge=0)
    x: float
    y: float
    width: float
    height: float
    required: bool = True
    signer_email: Optional[str] = None
    properties: Optional[dict] = None


class FieldUpdate(BaseModel):
    type: Optional[FieldType] = None
    page: Optional[int] = pydantic.Field(None, ge=0)
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    required: Optional[bool] = None
    signer_email: Optional[str] = None
    properties: Optional[dict] = None


class Field(BaseModel):
    id: int
    document_id: int
    type: FieldType
    page: int
    x: float
    y: float
    width: float
    height: float
    required: bool
    signer_email: Optional[str] = None
    properties: Optional[dict] = None
    model_config = ConfigDict(from_attributes=True)


# --- Documents -----------------------------------------------------------------

class Document(BaseModel):
    id: int
    title: str
    filename: Optional[str] = None
    page_count: int
    status: DocumentStatus
    workflow_type: WorkflowType
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class DocumentDetail(Document):
    signers: List[Signer] = []
    fields: List[Field] = []


class SendResult(BaseModel):
    document_id: int
    status: DocumentStatus
    signers_notified: int


class DocumentStatusReport(BaseModel):
    document_status: DocumentStatus
    workflow_type: WorkflowType
    signers: List[Signer]
    total_signers: int
    signed_count: int
    pending_count: int
    declined_count: int


# --- Signing -------------------------------------------------------------------

class SignatureInput(BaseModel):
    field_id: int
    signature_type: SignatureType
    # image payload for drawn/uploaded; defaults to text_value otherwise
    signature_data: str = ""
    text_value: Optional[str] = None
    font_family: Optional[str] = None


class SubmitSignaturesRequest(BaseModel):
    signatures: List[SignatureInput] = pydantic.Field(min_length=1)


class SubmitResult(BaseModel):
    document_completed: bool


class DeclineRequest(BaseModel):
    reason: Optional[str] = pydantic.Field(None, max_length=1000)


class DeclineResult(BaseModel):
    signer_status: SignerStatus
    document_status: DocumentStatus


class Signature(BaseModel):
    id: int
    signer_id: int
    field_id: int
    signature_type: SignatureType
    signature_data: str
    text_value: Optional[str] = None
    font_family: Optional[str] = None
    signed_at: datetime
    model_config = ConfigDict(from_attributes=True)


class SigningSession(BaseModel):
    document: Document
    signer: Signer
    fields: List[Field]
    signatures: List[Signature]

"""Field and signature validation.

All checks collect violations rather than stopping at the first one, so a
caller can report every problem with a document at once.
"""
import base64
import binascii
import re

import pydantic

from ..errors import Violation
from ..models import FieldType, SignatureType, WorkflowType
from ..schemas import ChoiceProperties, DateProperties, RadioProperties, TextProperties, parse_properties
from .geometry import meets_minimum_size, minimum_size, validate_bounds
from .pdf_service import STANDARD_FONTS

ACCEPTED_SIGNATURE_TYPES: dict[FieldType, frozenset[SignatureType]] = {
    FieldType.SIGNATURE: frozenset({SignatureType.DRAWN, SignatureType.TYPED, SignatureType.UPLOADED}),
    FieldType.INITIALS: frozenset({SignatureType.DRAWN, SignatureType.TYPED, SignatureType.UPLOADED}),
    FieldType.TEXT: frozenset({SignatureType.TYPED}),
    FieldType.DATE: frozenset({SignatureType.TYPED}),
    FieldType.TEXTAREA: frozenset({SignatureType.TYPED}),
    FieldType.CHECKBOX: frozenset({SignatureType.SELECTION}),
    FieldType.RADIO: frozenset({SignatureType.SELECTION}),
    FieldType.DROPDOWN: frozenset({SignatureType.SELECTION}),
}

MAX_TYPED_SIGNATURE_LENGTH = 500
MAX_FONT_FAMILY_LENGTH = 100

_DATA_URL_PREFIX = re.compile(r"^data:image/(png|jpeg|jpg|gif|webp);base64,")
_TRUTHY = {"true", "1", "yes", "on", "checked"}
_FALSY = {"false", "0", "no", "off", "unchecked"}


def decode_image_payload(data: str | None) -> bytes | None:
    """Decode a base64 image, with or without a data URL prefix; None if invalid."""
    if not data:
        return None
    payload = _DATA_URL_PREFIX.sub("", data.strip(), count=1)
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None
    return raw or None


def coerce_bool(value) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    return None


def _field_type(field) -> FieldType | None:
    try:
        return FieldType(field.type)
    except ValueError:
        return None


def validate_properties(field) -> list[Violation]:
    field_id = getattr(field, "id", None)
    if _field_type(field) is None:
        return [Violation(f"Invalid field type: {field.type}", field_id)]

    try:
        props = parse_properties(field.type, field.properties)
    except pydantic.ValidationError as exc:
        return [
            Violation(f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}", field_id)
            for err in exc.errors()
        ]

    violations = []
    if isinstance(props, (TextProperties, DateProperties, ChoiceProperties)):
        if props.font_family not in STANDARD_FONTS:
            violations.append(Violation(f"Unknown font family: {props.font_family}", field_id))

    if isinstance(props, ChoiceProperties):
        violations.extend(_validate_options(props, field_id))
    return violations


def _validate_options(props: ChoiceProperties, field_id) -> list[Violation]:
    kind = "Radio" if isinstance(props, RadioProperties) else "Dropdown"
    min_options, max_options = (2, 10) if kind == "Radio" else (1, 20)
    violations = []

    if len(props.options) < min_options:
        violations.append(Violation(f"{kind} field must have at least {min_options} option(s)", field_id))
    if len(props.options) > max_options:
        violations.append(Violation(f"{kind} field cannot have more than {max_options} options", field_id))

    values = [option.value for option in props.options]
    if len(set(values)) != len(values):
        violations.append(Violation(f"{kind} options must have unique values", field_id))
    if any(not option.label.strip() for option in props.options):
        violations.append(Violation(f"{kind} option labels cannot be empty", field_id))
    if any(not option.value.strip() for option in props.options):
        violations.append(Violation(f"{kind} option values cannot be empty", field_id))
    if props.selected_value and props.selected_value not in values:
        violations.append(Violation(f"Selected value must match one of the {kind.lower()} options", field_id))
    return violations


def validate_field(field, page_width: float, page_height: float) -> list[Violation]:
    """Bounds, minimum size and properties of one field against its page."""
    violations = validate_bounds(field, page_width, page_height)
    field_type = _field_type(field)
    if field_type is not None and not meets_minimum_size(field):
        min_width, min_height = minimum_size(field_type)
        violations.append(
            Violation(
                f"Field does not meet minimum size for {field_type.value}: {min_width}x{min_height} points",
                getattr(field, "id", None),
            )
        )
    violations.extend(validate_properties(field))
    return violations


def validate_for_send(document, renderer) -> list[Violation]:
    """Everything that must hold before a draft can go out for signature."""
    violations = []
    fields = list(document.fields)
    signers = list(document.signers)

    if not fields:
        violations.append(Violation("Document must have at least one field"))
    if not signers:
        violations.append(Violation("Document must have at least one signer"))
    elif document.workflow_type == WorkflowType.SINGLE.value and len(signers) != 1:
        violations.append(Violation(f"Single-signer workflow requires exactly one signer ({len(signers)} found)"))

    signer_emails = {signer.email for signer in signers}
    page_sizes: dict[int, tuple[float, float]] = {}

    for field in fields:
        if not field.signer_email or not field.signer_email.strip():
            violations.append(Violation("Field is not assigned to a signer", field.id))
        elif field.signer_email not in signer_emails:
            violations.append(Violation(f"Field is assigned to {field.signer_email}, who is not a signer", field.id))

        if field.page < 0 or field.page >= document.page_count:
            violations.append(
                Violation(f"Page {field.page} does not exist (document has {document.page_count} pages)", field.id)
            )
            violations.extend(validate_properties(field))
            continue

        if field.page not in page_sizes:
            page_sizes[field.page] = renderer.get_page_dimensions(document.file_path, field.page)
        violations.extend(validate_field(field, *page_sizes[field.page]))

    assigned = {field.signer_email for field in fields}
    for signer in signers:
        if signer.email not in assigned:
            violations.append(Violation(f"Signer {signer.email} has no assigned fields"))

    return violations


def validate_signature_submission(signature, field) -> list[Violation]:
    """Check one submitted value against the field it fulfils."""
    field_id = field.id
    field_type = _field_type(field)
    if field_type is None:
        return [Violation(f"Invalid field type: {field.type}", field_id)]

    try:
        signature_type = SignatureType(signature.signature_type)
    except ValueError:
        return [Violation(f"Invalid signature type: {signature.signature_type}", field_id)]

    if signature_type not in ACCEPTED_SIGNATURE_TYPES[field_type]:
        return [Violation(f"A {signature_type.value} signature cannot fill a {field_type.value} field", field_id)]

    violations = []
    text_value = signature.text_value or ""

    if signature_type in (SignatureType.DRAWN, SignatureType.UPLOADED):
        if decode_image_payload(signature.signature_data) is None:
            violations.append(Violation("Signature data must be a valid base64 encoded image", field_id))

    elif signature_type == SignatureType.TYPED:
        if not text_value.strip():
            violations.append(Violation("A text value is required", field_id))
        elif field_type in (FieldType.SIGNATURE, FieldType.INITIALS):
            if len(text_value) > MAX_TYPED_SIGNATURE_LENGTH:
                violations.append(Violation("Typed signature must be 1-500 characters", field_id))
        else:
            max_length = getattr(parse_properties(field.type, field.properties), "max_length", None)
            if max_length and len(text_value) > max_length:
                violations.append(Violation(f"Text exceeds the maximum length of {max_length}", field_id))
        if signature.font_family and len(signature.font_family) > MAX_FONT_FAMILY_LENGTH:
            violations.append(Violation("Font family name too long (max 100 characters)", field_id))

    else:
        if not text_value.strip():
            violations.append(Violation("A selection is required", field_id))
        elif field_type == FieldType.CHECKBOX:
            if coerce_bool(text_value) is None:
                violations.append(Violation(f"Checkbox value {text_value!r} is not a boolean", field_id))
        else:
            props = parse_properties(field.type, field.properties)
            if text_value not in {option.value for option in props.options}:
                violations.append(Violation(f"{text_value!r} is not one of the field's options", field_id))

    return violations

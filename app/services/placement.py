"""Turn accepted signatures into drawable placements on the artifact."""
from ..models import FieldType, SignatureType
from ..schemas import parse_properties
from .field_validation import coerce_bool, decode_image_payload
from .geometry import to_artifact_space
from .pdf_service import (
    STANDARD_FONTS,
    PlacedCheckbox,
    PlacedDropdown,
    PlacedImage,
    PlacedRadio,
    PlacedText,
    PlacedTextarea,
    Placement,
)

TYPED_SIGNATURE_FONT = "Helvetica-Oblique"


def _selected_value(signature) -> str:
    return signature.text_value or signature.signature_data or ""


def place_signature(signature, field, page_height: float) -> Placement:
    """Classify one signature by its field's type and position it in PDF space."""
    x, y = to_artifact_space(field, page_height)
    box = dict(page=field.page, x=x, y=y, width=field.width, height=field.height)
    props = parse_properties(field.type, field.properties)
    field_type = FieldType(field.type)

    if field_type in (FieldType.SIGNATURE, FieldType.INITIALS):
        if signature.signature_type == SignatureType.TYPED.value:
            font = signature.font_family if signature.font_family in STANDARD_FONTS else TYPED_SIGNATURE_FONT
            return PlacedText(
                **box,
                text=signature.text_value or "",
                font_family=font,
                font_size=max(8.0, min(field.height * 0.5, 36.0)),
                color=props.signature_color,
                align="center",
            )
        image = decode_image_payload(signature.signature_data)
        if image is None:
            raise ValueError(f"Signature {signature.id} has no decodable image")
        return PlacedImage(**box, image=image)

    if field_type in (FieldType.TEXT, FieldType.DATE):
        return PlacedText(
            **box,
            text=signature.text_value or "",
            font_family=props.font_family,
            font_size=props.font_size,
            color=props.text_color,
            align=props.text_align,
        )

    if field_type == FieldType.TEXTAREA:
        return PlacedTextarea(
            **box,
            text=signature.text_value or "",
            font_family=props.font_family,
            font_size=props.font_size,
            color=props.text_color,
            background_color=props.background_color,
            border_color=props.border_color,
        )

    if field_type == FieldType.CHECKBOX:
        return PlacedCheckbox(
            **box,
            checked=bool(coerce_bool(_selected_value(signature))),
            check_color=props.check_color,
            background_color=props.background_color,
            border_color=props.border_color,
            border_width=props.border_width,
            style=props.style,
        )

    value = _selected_value(signature)
    if field_type == FieldType.RADIO:
        return PlacedRadio(
            **box,
            options=[(option.label, option.value) for option in props.options],
            selected_value=value,
            orientation=props.orientation,
            option_spacing=props.option_spacing,
            font_family=props.font_family,
            font_size=props.font_size,
            color=props.text_color,
        )

    label = next((option.label for option in props.options if option.value == value), None)
    return PlacedDropdown(
        **box,
        label=label,
        placeholder=props.placeholder,
        font_family=props.font_family,
        font_size=props.font_size,
        color=props.text_color,
        background_color=props.background_color,
        border_color=props.border_color,
    )


def place_document_signatures(document, renderer) -> list[Placement]:
    """Every signature on the document, each against its own page's height."""
    fields = {field.id: field for field in document.fields}
    page_heights: dict[int, float] = {}
    placed = []

    for signer in document.signers:
        for signature in signer.signatures:
            field = fields.get(signature.field_id)
            if field is None:
                continue
            if field.page not in page_heights:
                _, page_heights[field.page] = renderer.get_page_dimensions(document.file_path, field.page)
            placed.append(place_signature(signature, field, page_heights[field.page]))
    return placed

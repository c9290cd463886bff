"""Field placement checks and the page coordinate transform.

Fields are stored top-left-origin (how the editor places them); PDF pages are
bottom-left-origin. Each field is translated with its own page's height since
pages in one document can differ in size.
"""
from ..errors import Violation
from ..models import FieldType

# (width, height) in points
MINIMUM_SIZES: dict[FieldType, tuple[float, float]] = {
    FieldType.SIGNATURE: (150, 50),
    FieldType.INITIALS: (50, 50),
    FieldType.DATE: (100, 25),
    FieldType.TEXT: (100, 25),
    FieldType.CHECKBOX: (15, 15),
    FieldType.RADIO: (100, 50),  # two vertical options
    FieldType.DROPDOWN: (120, 25),
    FieldType.TEXTAREA: (150, 60),
}


def validate_bounds(field, page_width: float, page_height: float) -> list[Violation]:
    """Return every way the field falls outside its page; empty when it fits.

    Placement flush with the page edge is valid.
    """
    violations = []

    def add(message):
        violations.append(Violation(message, getattr(field, "id", None)))

    if field.x < 0:
        add("X coordinate must be 0 or greater")
    if field.y < 0:
        add("Y coordinate must be 0 or greater")
    if field.width <= 0:
        add("Width must be greater than 0")
    if field.height <= 0:
        add("Height must be greater than 0")
    if field.x + field.width > page_width:
        add(f"Field extends beyond page width ({field.x + field.width} > {page_width})")
    if field.y + field.height > page_height:
        add(f"Field extends beyond page height ({field.y + field.height} > {page_height})")
    return violations


def minimum_size(field_type) -> tuple[float, float]:
    return MINIMUM_SIZES[FieldType(field_type)]


def meets_minimum_size(field) -> bool:
    min_width, min_height = minimum_size(field.type)
    return field.width >= min_width and field.height >= min_height


def to_artifact_space(field, page_height: float) -> tuple[float, float]:
    """Map the field's top-left-origin (x, y) to the PDF's bottom-left origin."""
    return field.x, page_height - field.y - field.height


def from_artifact_space(x: float, artifact_y: float, field_height: float, page_height: float) -> tuple[float, float]:
    return x, page_height - artifact_y - field_height

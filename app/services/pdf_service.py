import io
import logging
from collections import defaultdict
from dataclasses import dataclass, field as dataclass_field
from typing import Protocol

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .storage import BlobStore

logger = logging.getLogger(__name__)

# The 14 fonts every PDF viewer ships; nothing needs embedding.
STANDARD_FONTS = (
    "Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique",
    "Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique",
    "Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic",
    "Symbol", "ZapfDingbats",
)

PLACEHOLDER_GREY = colors.Color(0.5, 0.5, 0.5)
CHEVRON_GREY = colors.Color(0.3, 0.3, 0.3)


# Placed fields carry PDF-space geometry (bottom-left origin) plus the
# content to draw. One class per rendering behaviour.

@dataclass
class Placement:
    page: int
    x: float
    y: float
    width: float
    height: float


@dataclass
class PlacedImage(Placement):
    image: bytes


@dataclass
class PlacedText(Placement):
    text: str
    font_family: str = "Helvetica"
    font_size: float = 12
    color: str = "#000000"
    align: str = "left"


@dataclass
class PlacedTextarea(Placement):
    text: str
    font_family: str = "Helvetica"
    font_size: float = 12
    color: str = "#000000"
    background_color: str = "#FFFFFF"
    border_color: str = "#000000"
    line_height: float = 1.2


@dataclass
class PlacedCheckbox(Placement):
    checked: bool
    check_color: str = "#000000"
    background_color: str = "#FFFFFF"
    border_color: str = "#000000"
    border_width: float = 1
    style: str = "checkmark"


@dataclass
class PlacedRadio(Placement):
    options: list[tuple[str, str]] = dataclass_field(default_factory=list)  # (label, value)
    selected_value: str | None = None
    orientation: str = "vertical"
    option_spacing: float = 20
    font_family: str = "Helvetica"
    font_size: float = 12
    color: str = "#000000"


@dataclass
class PlacedDropdown(Placement):
    label: str | None = None
    placeholder: str = "Select an option"
    font_family: str = "Helvetica"
    font_size: float = 12
    color: str = "#000000"
    background_color: str = "#FFFFFF"
    border_color: str = "#000000"


class UnreadableDocument(ValueError):
    pass


class DocumentRenderer(Protocol):
    def page_count(self, artifact_ref: str) -> int: ...

    def get_page_dimensions(self, artifact_ref: str, page: int) -> tuple[float, float]: ...

    def composite_fields(self, artifact_ref: str, placed_fields: list[Placement]) -> bytes: ...


class PdfRenderer:
    """DocumentRenderer backed by pypdf (reading/merging) and reportlab (drawing)."""

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    def _reader(self, artifact_ref: str) -> PdfReader:
        try:
            return PdfReader(io.BytesIO(self.blob_store.read(artifact_ref)))
        except PdfReadError as exc:
            raise UnreadableDocument(f"{artifact_ref} is not a readable PDF: {exc}") from exc

    def page_count(self, artifact_ref: str) -> int:
        return len(self._reader(artifact_ref).pages)

    def get_page_dimensions(self, artifact_ref: str, page: int) -> tuple[float, float]:
        reader = self._reader(artifact_ref)
        if page < 0 or page >= len(reader.pages):
            raise IndexError(f"Page {page} does not exist in {artifact_ref}")
        box = reader.pages[page].mediabox
        return float(box.width), float(box.height)

    def composite_fields(self, artifact_ref: str, placed_fields: list[Placement]) -> bytes:
        reader = self._reader(artifact_ref)
        writer = PdfWriter()

        fields_by_page = defaultdict(list)
        for placed in placed_fields:
            fields_by_page[placed.page].append(placed)

        for page_number, page in enumerate(reader.pages):
            if page_number in fields_by_page:
                width = float(page.mediabox.width)
                height = float(page.mediabox.height)

                packet = io.BytesIO()
                c = canvas.Canvas(packet, pagesize=(width, height))
                for placed in fields_by_page[page_number]:
                    draw_placed_field(c, placed)
                c.save()
                packet.seek(0)

                overlay = PdfReader(packet)
                page.merge_page(overlay.pages[0])

            writer.add_page(page)

        missing = set(fields_by_page) - set(range(len(reader.pages)))
        if missing:
            logger.warning("Skipped fields on missing pages %s of %s", sorted(missing), artifact_ref)

        output_buffer = io.BytesIO()
        writer.write(output_buffer)
        return output_buffer.getvalue()


def draw_placed_field(c: canvas.Canvas, placed: Placement) -> None:
    if isinstance(placed, PlacedImage):
        _draw_image(c, placed)
    elif isinstance(placed, PlacedTextarea):
        _draw_textarea(c, placed)
    elif isinstance(placed, PlacedText):
        _draw_text(c, placed)
    elif isinstance(placed, PlacedCheckbox):
        _draw_checkbox(c, placed)
    elif isinstance(placed, PlacedRadio):
        _draw_radio(c, placed)
    elif isinstance(placed, PlacedDropdown):
        _draw_dropdown(c, placed)
    else:
        raise TypeError(f"Cannot draw {type(placed).__name__}")


def _draw_image(c, placed: PlacedImage):
    image = ImageReader(io.BytesIO(placed.image))
    c.drawImage(
        image, placed.x, placed.y,
        width=placed.width, height=placed.height,
        mask="auto", preserveAspectRatio=True, anchor="c",
    )


def _draw_text(c, placed: PlacedText):
    c.setFont(placed.font_family, placed.font_size)
    c.setFillColor(colors.HexColor(placed.color))
    # vertically centred in the box
    baseline = placed.y + (placed.height - placed.font_size) / 2
    if placed.align == "center":
        c.drawCentredString(placed.x + placed.width / 2, baseline, placed.text)
    elif placed.align == "right":
        c.drawRightString(placed.x + placed.width - 2, baseline, placed.text)
    else:
        c.drawString(placed.x + 2, baseline, placed.text)


def _draw_box(c, placed, background_color, border_color, border_width=1):
    c.setFillColor(colors.HexColor(background_color))
    c.setStrokeColor(colors.HexColor(border_color))
    c.setLineWidth(border_width)
    c.rect(placed.x, placed.y, placed.width, placed.height, stroke=1 if border_width > 0 else 0, fill=1)


def wrap_text(text: str, font_family: str, font_size: float, max_width: float) -> list[str]:
    lines = []
    for paragraph in text.split("\n"):
        if not paragraph.strip():
            lines.append("")
            continue
        lines.extend(simpleSplit(paragraph, font_family, font_size, max_width))
    return lines


def _draw_textarea(c, placed: PlacedTextarea):
    _draw_box(c, placed, placed.background_color, placed.border_color)

    padding = 5
    line_height = placed.line_height * placed.font_size
    current_y = placed.y + placed.height - padding - placed.font_size
    bottom = placed.y + padding

    c.setFont(placed.font_family, placed.font_size)
    c.setFillColor(colors.HexColor(placed.color))
    for line in wrap_text(placed.text, placed.font_family, placed.font_size, placed.width - padding * 2):
        if current_y < bottom:
            break
        if line.strip():
            c.drawString(placed.x + padding, current_y, line)
        current_y -= line_height


def _draw_checkbox(c, placed: PlacedCheckbox):
    _draw_box(c, placed, placed.background_color, placed.border_color, placed.border_width)
    if not placed.checked:
        return

    x, y, w, h = placed.x, placed.y, placed.width, placed.height
    padding = min(w, h) * 0.2
    c.setStrokeColor(colors.HexColor(placed.check_color))
    c.setLineWidth(max(1, min(w, h) * 0.1))

    if placed.style == "checkmark":
        mid_x, mid_y = x + w * 0.35, y + padding
        c.line(x + padding, y + h * 0.5, mid_x, mid_y)
        c.line(mid_x, mid_y, x + w - padding, y + h - padding)
    else:
        c.line(x + padding, y + h - padding, x + w - padding, y + padding)
        c.line(x + w - padding, y + h - padding, x + padding, y + padding)


def _draw_radio(c, placed: PlacedRadio):
    radius = 6
    current_x = placed.x
    current_y = placed.y + placed.height - placed.font_size
    text_color = colors.HexColor(placed.color)

    c.setFont(placed.font_family, placed.font_size)
    c.setLineWidth(1)
    for label, value in placed.options:
        centre_x = current_x + radius
        centre_y = current_y - radius + placed.font_size / 2

        c.setStrokeColor(colors.black)
        c.circle(centre_x, centre_y, radius, stroke=1, fill=0)
        if value == placed.selected_value:
            c.setFillColor(colors.black)
            c.circle(centre_x, centre_y, radius - 3, stroke=0, fill=1)

        c.setFillColor(text_color)
        c.drawString(current_x + radius * 2 + 5, current_y, label)

        if placed.orientation == "horizontal":
            current_x += radius * 2 + 10 + stringWidth(label, placed.font_family, placed.font_size) + placed.option_spacing
        else:
            current_y -= placed.option_spacing


def _draw_dropdown(c, placed: PlacedDropdown):
    _draw_box(c, placed, placed.background_color, placed.border_color)

    text = placed.label or placed.placeholder
    max_width = placed.width - 25  # room for the chevron
    while stringWidth(text, placed.font_family, placed.font_size) > max_width and len(text) > 3:
        text = text[:-4] + "..."

    c.setFont(placed.font_family, placed.font_size)
    c.setFillColor(colors.HexColor(placed.color) if placed.label else PLACEHOLDER_GREY)
    c.drawString(placed.x + 5, placed.y + (placed.height - placed.font_size) / 2, text)

    arrow_x = placed.x + placed.width - 15
    arrow_y = placed.y + placed.height / 2
    c.setStrokeColor(CHEVRON_GREY)
    c.setLineWidth(1.5)
    c.line(arrow_x - 4, arrow_y + 2, arrow_x, arrow_y - 2)
    c.line(arrow_x, arrow_y - 2, arrow_x + 4, arrow_y + 2)

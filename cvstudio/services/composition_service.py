"""
Composition Service
Renders a record through a template into a paginated A4 PDF.

Each template page becomes one PDF page: the background is painted full-bleed,
then every field placed on that page is resolved against the record and drawn
by type (auto-fitted text, dates, YES flags, checkmark glyphs, photos).
Missing data degrades silently; a render never fails because a value, photo
or background is absent or malformed.
"""

import logging
import re
from dataclasses import dataclass, field as dataclass_field
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple, Union

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from cvstudio.config import settings
from cvstudio.errors import CompositionError, CVStudioError
from cvstudio.schemas.record import PHOTO_FIELD_KEYS, Record, RecordValue
from cvstudio.schemas.template import (
    CustomTemplate,
    DateFormat,
    FieldType,
    TemplateField,
    TextAlign,
)
from cvstudio.services.asset_loader import AssetLoader, asset_loader, decode_data_uri, is_image_payload, open_image

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4  # points
TEXT_PADDING = 0.5 * mm
FONT_STEP = 0.25
MIN_FONT_SIZE = 4.0
DEFAULT_FONT_SIZE = 10.0
DATE_MIN_LENGTH = 5

CHECKMARK_FONT = "ZapfDingbats"
CHECKMARK_GLYPH = "4"
BOOLEAN_TEXT = "YES"

MONTHS = ["JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"]
DATE_INPUT_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%d %b %Y", "%d %B %Y")
UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')
WHITESPACE = re.compile(r"\s+")

# Standard Type 1 families: (normal, bold, italic, bold italic)
STANDARD_FAMILIES = {
    "helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "times": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}

# TrueType families loaded from FONT_DIR when present
TRUETYPE_FAMILIES = {
    "century": ("Century", ("Century.ttf", "Century-Bold.ttf", "Century-Italic.ttf", "Century-BoldItalic.ttf")),
    "poppins": ("Poppins", ("Poppins-Regular.ttf", "Poppins-Bold.ttf", "Poppins-Italic.ttf", "Poppins-BoldItalic.ttf")),
}

STYLE_SUFFIXES = ("Regular", "Bold", "Italic", "BoldItalic")


# ----------------------------------------------------------------------
# Pure helpers


def family_key(font_family: str) -> str:
    """Map a stored font family onto a renderable family, sans-serif by default"""
    font = (font_family or "Helvetica").lower()
    if "helvetica" in font or "arial" in font or "sans" in font:
        return "helvetica"
    if "times" in font or "serif" in font:
        return "times"
    if "courier" in font or "mono" in font:
        return "courier"
    if "century" in font:
        return "century"
    if "poppins" in font:
        return "poppins"
    return "helvetica"


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    if not hex_color:
        return (0, 0, 0)
    color = hex_color.strip().lstrip("#")
    if len(color) != 6:
        return (0, 0, 0)
    try:
        return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return (0, 0, 0)


def is_date_key(key: str) -> bool:
    return "date" in key.lower() or key == "dob"


def parse_date(text: str) -> Optional[date]:
    value = text.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in DATE_INPUT_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def format_date(text: str, date_format: Optional[DateFormat] = None) -> str:
    """
    Reformat a date string for display

    numeric -> DD/MM/YYYY, alpha (default) -> DD MMM YYYY. Unparseable input is
    returned unchanged.
    """
    if not text:
        return ""
    parsed = parse_date(text)
    if parsed is None:
        logger.debug("Date %r left unformatted", text)
        return text
    if date_format == DateFormat.NUMERIC:
        return f"{parsed.day:02d}/{parsed.month:02d}/{parsed.year}"
    return f"{parsed.day:02d} {MONTHS[parsed.month - 1]} {parsed.year}"


def fit_font_size(text: str, font_name: str, font_size: float, max_width: float, max_height: float) -> float:
    """Shrink in fixed steps until the text fits the box, never below the floor or above the start"""
    size = font_size or DEFAULT_FONT_SIZE
    while size > MIN_FONT_SIZE and (
        pdfmetrics.stringWidth(text, font_name, size) > max_width or size > max_height
    ):
        size = max(MIN_FONT_SIZE, size - FONT_STEP)
    return size


def clean_filename_part(value) -> str:
    text = str(value or "").strip().upper()
    text = UNSAFE_FILENAME_CHARS.sub("-", text)
    return WHITESPACE.sub("_", text)


def build_filename(agency_name: str, record: Record, template: CustomTemplate) -> str:
    """AGENCY_REF_NAME_OFFICE.pdf"""
    parts = [
        clean_filename_part(agency_name),
        clean_filename_part(record.text("refNo") or "REF"),
        clean_filename_part(record.text("fullName") or "CANDIDATE"),
        clean_filename_part(template.office_name),
    ]
    return "_".join(parts) + ".pdf"


def resolve_value(
    field: TemplateField,
    record: Record,
    template: CustomTemplate,
    now: datetime,
) -> Optional[Union[RecordValue, str]]:
    """Value for a field; special keys win over a direct record lookup"""
    key = field.key
    if key == "currentDate":
        return now.date().isoformat()
    if key == "officeName":
        return template.office_name or record.text("officeName")
    if key in PHOTO_FIELD_KEYS:
        return record.photos.get(PHOTO_FIELD_KEYS[key])
    return record.get(key)


def is_empty(value) -> bool:
    return value is None or value is False or (isinstance(value, str) and not value.strip())


def field_box(field: TemplateField) -> Tuple[float, float, float, float]:
    """(left, bottom, width, height) in points, PDF origin at bottom-left"""
    width = field.width / 100 * PAGE_WIDTH
    height = field.height / 100 * PAGE_HEIGHT
    left = field.x / 100 * PAGE_WIDTH
    top = field.y / 100 * PAGE_HEIGHT
    return left, PAGE_HEIGHT - top - height, width, height


# ----------------------------------------------------------------------
# Fonts


class FontResolver:
    """Resolves (family, bold, italic) to a registered PDF font name"""

    def __init__(self, font_dir: str = None):
        self.font_dir = Path(font_dir or settings.FONT_DIR)
        self._cache = {}

    def resolve(self, font_family: str, bold: bool = False, italic: bool = False) -> str:
        key = family_key(font_family)
        style = (1 if bold else 0) + (2 if italic else 0)
        if key in STANDARD_FAMILIES:
            return STANDARD_FAMILIES[key][style]
        cache_key = (key, style)
        if cache_key not in self._cache:
            self._cache[cache_key] = self._register_truetype(key, style)
        return self._cache[cache_key] or STANDARD_FAMILIES["helvetica"][style]

    def _register_truetype(self, key: str, style: int) -> Optional[str]:
        base_name, files = TRUETYPE_FAMILIES[key]
        font_name = f"{base_name}-{STYLE_SUFFIXES[style]}"
        if font_name in pdfmetrics.getRegisteredFontNames():
            return font_name
        for candidate in (files[style], files[0]):
            path = self.font_dir / candidate
            if not path.exists():
                continue
            try:
                pdfmetrics.registerFont(TTFont(font_name, str(path)))
                return font_name
            except Exception as e:
                logger.warning("Font file %s could not be registered: %s", path, e)
                return None
        logger.warning("Font '%s' is unavailable in %s, falling back to Helvetica", base_name, self.font_dir)
        return None


# ----------------------------------------------------------------------
# Render plan


@dataclass
class TextElement:
    field_id: str
    key: str
    text: str
    font_name: str
    font_size: float
    color: Tuple[int, int, int]
    x: float
    y: float
    align: TextAlign


@dataclass
class ImageElement:
    field_id: str
    key: str
    image: Image.Image
    x: float
    y: float
    width: float
    height: float


@dataclass
class PagePlan:
    number: int
    background: Optional[Image.Image] = None
    elements: List[Union[TextElement, ImageElement]] = dataclass_field(default_factory=list)

    def texts(self) -> List[TextElement]:
        return [e for e in self.elements if isinstance(e, TextElement)]

    def images(self) -> List[ImageElement]:
        return [e for e in self.elements if isinstance(e, ImageElement)]


@dataclass
class RenderedDocument:
    template_id: str
    filename: str
    content: bytes
    page_count: int


class CompositionService:
    """Deterministic (record, template, agency) -> PDF compositor"""

    def __init__(self, loader: AssetLoader = None, fonts: FontResolver = None):
        self.loader = loader or asset_loader
        self.fonts = fonts or FontResolver()

    async def compose(
        self,
        record: Record,
        template: CustomTemplate,
        agency_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RenderedDocument:
        """
        Render one document

        Raises:
            CompositionError: Unexpected failure while building or writing the PDF
        """
        now = now or datetime.now()
        agency_name = agency_name or settings.DEFAULT_AGENCY_NAME
        backgrounds = [await self._load_background(ref) for ref in template.pages]

        try:
            plans = self.build_plans(record, template, backgrounds, now)
            filename = build_filename(agency_name, record, template)
            content = self.write_pdf(plans, title=filename[:-4], author=agency_name)
        except CVStudioError:
            raise
        except Exception as e:
            logger.exception("Rendering template %s failed", template.id)
            raise CompositionError(f"Failed to render '{template.office_name or template.name}': {e}")

        logger.info("Rendered %s (%d pages)", filename, len(plans))
        return RenderedDocument(
            template_id=template.id,
            filename=filename,
            content=content,
            page_count=len(plans),
        )

    async def _load_background(self, ref: str) -> Optional[Image.Image]:
        if not ref:
            return None
        try:
            return await self.loader.load_image(ref)
        except Exception as e:
            logger.warning("Failed to load background %s: %s", ref[:70], e)
            return None

    def build_plans(
        self,
        record: Record,
        template: CustomTemplate,
        backgrounds: List[Optional[Image.Image]],
        now: datetime,
    ) -> List[PagePlan]:
        page_total = max(len(template.pages), 1)
        plans = []
        for number in range(1, page_total + 1):
            background = backgrounds[number - 1] if number - 1 < len(backgrounds) else None
            plans.append(self.build_page_plan(number, background, record, template, now))
        return plans

    def build_page_plan(
        self,
        number: int,
        background: Optional[Image.Image],
        record: Record,
        template: CustomTemplate,
        now: datetime,
    ) -> PagePlan:
        plan = PagePlan(number=number, background=background)
        for field in template.fields_on_page(number):
            try:
                element = self.build_element(field, record, template, now)
            except Exception as e:
                logger.warning("Skipping field %s (%s): %s", field.key, field.id, e)
                continue
            if element is not None:
                plan.elements.append(element)
        return plan

    def build_element(
        self,
        field: TemplateField,
        record: Record,
        template: CustomTemplate,
        now: datetime,
    ) -> Optional[Union[TextElement, ImageElement]]:
        """Draw instruction for one field, None when nothing is visible"""
        value = resolve_value(field, record, template, now)
        # False flags draw nothing, same as absent values
        if is_empty(value):
            return None

        box = field_box(field)

        if field.type == FieldType.IMAGE:
            return self._image_element(field, value, box)

        if field.type == FieldType.CHECKMARK:
            return self._text_element(field, CHECKMARK_GLYPH, CHECKMARK_FONT, box, align=TextAlign.CENTER)

        font_name = self.fonts.resolve(field.font_family, field.bold, field.italic)
        if field.type == FieldType.BOOLEAN or isinstance(value, bool):
            return self._text_element(field, BOOLEAN_TEXT, font_name, box)

        text = str(value).strip()
        if is_date_key(field.key) and len(text) > DATE_MIN_LENGTH:
            text = format_date(text, field.date_format or DateFormat.ALPHA)
        return self._text_element(field, text, font_name, box)

    def _text_element(
        self,
        field: TemplateField,
        text: str,
        font_name: str,
        box: Tuple[float, float, float, float],
        align: Optional[TextAlign] = None,
    ) -> TextElement:
        left, bottom, width, height = box
        size = fit_font_size(
            text,
            font_name,
            field.font_size or DEFAULT_FONT_SIZE,
            width - 2 * TEXT_PADDING,
            height - 2 * TEXT_PADDING,
        )

        # Vertically centered on the box mid-height
        ascent, descent = pdfmetrics.getAscentDescent(font_name, size)
        baseline = bottom + height / 2 - (ascent + descent) / 2

        align = align or field.align or TextAlign.LEFT
        if align == TextAlign.CENTER:
            anchor_x = left + width / 2
        elif align == TextAlign.RIGHT:
            anchor_x = left + width
        else:
            anchor_x = left

        return TextElement(
            field_id=field.id,
            key=field.key,
            text=text,
            font_name=font_name,
            font_size=size,
            color=hex_to_rgb(field.color),
            x=anchor_x,
            y=baseline,
            align=align,
        )

    def _image_element(
        self,
        field: TemplateField,
        value,
        box: Tuple[float, float, float, float],
    ) -> Optional[ImageElement]:
        if not is_image_payload(value):
            return None
        try:
            image = open_image(decode_data_uri(value))
        except ValueError as e:
            logger.warning("Skipping image field %s: %s", field.key, e)
            return None
        left, bottom, width, height = box
        return ImageElement(
            field_id=field.id,
            key=field.key,
            image=image,
            x=left,
            y=bottom,
            width=width,
            height=height,
        )

    @staticmethod
    def write_pdf(plans: List[PagePlan], title: str = None, author: str = None) -> bytes:
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        if title:
            pdf.setTitle(title)
        if author:
            pdf.setAuthor(author)

        for plan in plans:
            if plan.background is not None:
                pdf.drawImage(ImageReader(plan.background), 0, 0, PAGE_WIDTH, PAGE_HEIGHT, mask="auto")
            for element in plan.elements:
                if isinstance(element, ImageElement):
                    # Box dimensions win over the image aspect ratio
                    pdf.drawImage(
                        ImageReader(element.image),
                        element.x, element.y, element.width, element.height,
                        mask="auto",
                    )
                    continue
                r, g, b = element.color
                pdf.setFillColorRGB(r / 255, g / 255, b / 255)
                pdf.setFont(element.font_name, element.font_size)
                if element.align == TextAlign.CENTER:
                    pdf.drawCentredString(element.x, element.y, element.text)
                elif element.align == TextAlign.RIGHT:
                    pdf.drawRightString(element.x, element.y, element.text)
                else:
                    pdf.drawString(element.x, element.y, element.text)
            pdf.showPage()

        pdf.save()
        return buffer.getvalue()


# Create singleton instance
composition_service = CompositionService()


def get_composition_service() -> CompositionService:
    """Dependency: shared compositor"""
    return composition_service

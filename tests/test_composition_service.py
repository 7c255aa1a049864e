"""Tests for value resolution, text fitting and PDF output of the composition engine."""

from datetime import datetime
from io import BytesIO

import pytest
from pypdf import PdfReader
from reportlab.pdfbase import pdfmetrics

from cvstudio.schemas.record import Record
from cvstudio.schemas.template import CustomTemplate, DateFormat, FieldType, TemplateField, TextAlign
from cvstudio.services.composition_service import (
    CHECKMARK_FONT,
    MIN_FONT_SIZE,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    CompositionService,
    FontResolver,
    ImageElement,
    TextElement,
    build_filename,
    clean_filename_part,
    field_box,
    fit_font_size,
    format_date,
    hex_to_rgb,
    is_date_key,
    resolve_value,
)

NOW = datetime(2024, 6, 15, 9, 30)


@pytest.fixture
def composer(tmp_path):
    return CompositionService(fonts=FontResolver(font_dir=str(tmp_path)))


def _element(composer, field, values=None, template=None, photos=None):
    record = Record(values=values or {}, photos=photos or {})
    return composer.build_element(field, record, template or CustomTemplate(office_name="AL NOOR"), NOW)


@pytest.mark.unit
def test_format_date_numeric_and_alpha():
    assert format_date("2024-06-15", DateFormat.NUMERIC) == "15/06/2024"
    assert format_date("2024-06-15", DateFormat.ALPHA) == "15 JUN 2024"
    assert format_date("2024-06-15") == "15 JUN 2024"


@pytest.mark.unit
def test_format_date_passes_through_unparseable():
    assert format_date("SOMETIME 2024", DateFormat.NUMERIC) == "SOMETIME 2024"
    assert format_date("2024-13-45", DateFormat.ALPHA) == "2024-13-45"


@pytest.mark.unit
def test_is_date_key():
    assert is_date_key("dob")
    assert is_date_key("expiryDate")
    assert is_date_key("currentDate")
    assert not is_date_key("fullName")


@pytest.mark.unit
def test_hex_to_rgb():
    assert hex_to_rgb("#ff0000") == (255, 0, 0)
    assert hex_to_rgb("00ff00") == (0, 255, 0)
    assert hex_to_rgb("nonsense") == (0, 0, 0)


@pytest.mark.unit
def test_fit_font_size_shrinks_to_fit_or_floor():
    text = "A VERY LONG CANDIDATE NAME THAT DOES NOT FIT"
    size = fit_font_size(text, "Helvetica", 12, 200, 20)

    assert MIN_FONT_SIZE < size < 12
    assert pdfmetrics.stringWidth(text, "Helvetica", size) <= 200

    assert fit_font_size(text, "Helvetica", 12, 1, 1) == MIN_FONT_SIZE
    assert fit_font_size("OK", "Helvetica", 12, 500, 50) == 12


@pytest.mark.unit
def test_field_box_uses_bottom_left_origin():
    field = TemplateField(key="fullName", x=10, y=20, width=50, height=10)

    left, bottom, width, height = field_box(field)

    assert left == pytest.approx(PAGE_WIDTH * 0.1)
    assert width == pytest.approx(PAGE_WIDTH * 0.5)
    assert height == pytest.approx(PAGE_HEIGHT * 0.1)
    assert bottom == pytest.approx(PAGE_HEIGHT * 0.7)


@pytest.mark.unit
def test_resolve_special_keys(png_data_uri):
    record = Record(values={"officeName": "RECORD OFFICE", "fullName": "JANE"}, photos={"face": png_data_uri})

    def value(key, office=""):
        return resolve_value(TemplateField(key=key), record, CustomTemplate(office_name=office), NOW)

    assert value("currentDate") == "2024-06-15"
    assert value("officeName", office="TEMPLATE OFFICE") == "TEMPLATE OFFICE"
    assert value("officeName") == "RECORD OFFICE"
    assert value("photoFace") == png_data_uri
    assert value("photoFull") is None
    assert value("fullName") == "JANE"


@pytest.mark.unit
def test_boolean_renders_yes_or_nothing(composer):
    field = TemplateField(key="langEnglishFluent", type=FieldType.BOOLEAN, width=10, height=4)

    element = _element(composer, field, {"langEnglishFluent": True})
    assert isinstance(element, TextElement)
    assert element.text == "YES"

    assert _element(composer, field, {"langEnglishFluent": False}) is None
    assert _element(composer, field, {}) is None


@pytest.mark.unit
def test_checkmark_renders_centered_glyph(composer):
    field = TemplateField(key="skillCooking", type=FieldType.CHECKMARK, x=30, y=30, width=4, height=4, font_size=12)

    element = _element(composer, field, {"skillCooking": True})

    assert element.font_name == CHECKMARK_FONT
    assert element.align == TextAlign.CENTER
    left, _, width, _ = field_box(field)
    assert element.x == pytest.approx(left + width / 2)
    assert _element(composer, field, {"skillCooking": False}) is None


@pytest.mark.unit
def test_date_field_is_reformatted(composer):
    numeric = TemplateField(key="dob", date_format=DateFormat.NUMERIC)
    alpha = TemplateField(key="expiryDate", date_format=DateFormat.ALPHA)

    assert _element(composer, numeric, {"dob": "2024-06-15"}).text == "15/06/2024"
    assert _element(composer, alpha, {"expiryDate": "2024-06-15"}).text == "15 JUN 2024"
    # Short values are left alone
    assert _element(composer, numeric, {"dob": "2024"}).text == "2024"


@pytest.mark.unit
def test_text_never_exceeds_configured_size(composer):
    field = TemplateField(key="fullName", width=5, height=1, font_size=14)

    element = _element(composer, field, {"fullName": "JANE MARY ALEMAYEHU TESFAYE"})

    assert MIN_FONT_SIZE <= element.font_size <= 14


@pytest.mark.unit
def test_text_alignment_anchors(composer):
    field = TemplateField(key="fullName", x=10, width=40, align=TextAlign.RIGHT)

    element = _element(composer, field, {"fullName": "JANE"})

    left, _, width, _ = field_box(field)
    assert element.x == pytest.approx(left + width)


@pytest.mark.unit
def test_empty_text_is_skipped(composer):
    field = TemplateField(key="religion")

    assert _element(composer, field, {"religion": "   "}) is None
    assert _element(composer, field, {}) is None


@pytest.mark.unit
def test_invalid_image_payload_is_skipped(composer, png_data_uri):
    field = TemplateField(key="photoFace", type=FieldType.IMAGE, width=20, height=15)

    assert _element(composer, field, photos={"face": "data:image/png;base64,AAAA"}) is None
    assert _element(composer, field, photos={"face": None}) is None

    element = _element(composer, field, photos={"face": png_data_uri})
    assert isinstance(element, ImageElement)
    left, bottom, width, height = field_box(field)
    assert (element.width, element.height) == (pytest.approx(width), pytest.approx(height))


@pytest.mark.unit
def test_unknown_font_family_falls_back(tmp_path):
    fonts = FontResolver(font_dir=str(tmp_path))

    assert fonts.resolve("Comic Whatever") == "Helvetica"
    assert fonts.resolve("Times New Roman", bold=True) == "Times-Bold"
    assert fonts.resolve("Courier", italic=True) == "Courier-Oblique"
    # TrueType family without font files
    assert fonts.resolve("Century", bold=True, italic=True) == "Helvetica-BoldOblique"


@pytest.mark.unit
def test_filename_is_sanitized():
    record = Record(values={"refNo": "tk/101", "fullName": "jane  doe"})
    template = CustomTemplate(office_name="al noor: kuwait")

    assert build_filename("Pixel Agency", record, template) == "PIXEL_AGENCY_TK-101_JANE_DOE_AL_NOOR-_KUWAIT.pdf"
    assert build_filename("PIXEL", Record(), CustomTemplate(office_name="X")) == "PIXEL_REF_CANDIDATE_X.pdf"
    assert clean_filename_part('  a?b*c  ') == "A-B-C"


@pytest.mark.anyio
async def test_compose_produces_one_pdf_page_per_template_page(composer, sample_template, sample_record):
    document = await composer.compose(Record.model_validate(sample_record), sample_template, agency_name="PIXEL", now=NOW)

    reader = PdfReader(BytesIO(document.content))
    assert document.page_count == 2
    assert len(reader.pages) == 2
    box = reader.pages[0].mediabox
    assert float(box.width) == pytest.approx(PAGE_WIDTH, abs=0.5)
    assert float(box.height) == pytest.approx(PAGE_HEIGHT, abs=0.5)
    assert "JANE DOE" in reader.pages[0].extract_text()
    assert document.filename == "PIXEL_TK-101_JANE_DOE_AL_NOOR.pdf"


@pytest.mark.unit
def test_compose_plan_contents(composer, sample_template, sample_record):
    record = Record.model_validate(sample_record)
    backgrounds = [None, None]

    first, second = composer.build_plans(record, sample_template, backgrounds, NOW)

    texts = {e.key: e.text for e in first.texts()}
    assert texts == {"fullName": "JANE DOE", "dob": "15/06/2000"}
    assert [e.key for e in first.images()] == ["photoFace"]
    assert {e.key: e.text for e in second.texts()} == {"langEnglishFluent": "YES", "skillCooking": "4"}


@pytest.mark.anyio
async def test_missing_background_still_renders(composer, sample_template, sample_record):
    template = sample_template.model_copy(update={"pages": ["missing/page-1.png"]})

    document = await composer.compose(Record.model_validate(sample_record), template, now=NOW)

    assert document.page_count == 1
    assert len(PdfReader(BytesIO(document.content)).pages) == 1


@pytest.mark.anyio
async def test_template_without_pages_renders_blank_page(composer):
    template = CustomTemplate(office_name="EMPTY", fields=[TemplateField(key="fullName", page=1)])

    document = await composer.compose(Record(values={"fullName": "JANE"}), template, now=NOW)

    assert document.page_count == 1
    assert len(PdfReader(BytesIO(document.content)).pages) == 1

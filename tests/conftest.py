import base64
import os
from io import BytesIO

# Settings are read at import time
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_cvstudio.db")

import pytest
from PIL import Image

from cvstudio.schemas.template import CustomTemplate, DateFormat, FieldType, TemplateField


def make_png(color=(255, 255, 255), size=(60, 85), mode="RGB") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def data_uri(content: bytes, content_type: str = "image/png") -> str:
    return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"


class FakeStorage:
    """Records uploads and returns deterministic public URLs"""

    def __init__(self):
        self.uploads = []
        self.deleted = []

    async def upload_bytes(self, path, content, content_type):
        self.uploads.append((path, content, content_type))
        return f"https://storage.test/{path}"

    async def delete_by_url(self, file_url):
        self.deleted.append(file_url)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def png_data_uri(png_bytes):
    return data_uri(png_bytes)


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def sample_template(png_data_uri):
    return CustomTemplate(
        name="Kuwait v1",
        office_name="AL NOOR",
        country="kuwait",
        pages=[png_data_uri, png_data_uri],
        fields=[
            TemplateField(key="fullName", label="Full Name", x=10, y=10, width=40, height=6, page=1),
            TemplateField(
                key="dob", label="Date of Birth", x=10, y=20, width=30, height=4, page=1,
                date_format=DateFormat.NUMERIC,
            ),
            TemplateField(key="photoFace", label="Face Photo", type=FieldType.IMAGE, x=70, y=5, width=20, height=15, page=1),
            TemplateField(key="langEnglishFluent", label="English: Fluent", type=FieldType.BOOLEAN, x=10, y=30, width=10, height=4, page=2),
            TemplateField(key="skillCooking", label="Cooking", type=FieldType.CHECKMARK, x=30, y=30, width=4, height=4, page=2),
        ],
    )


@pytest.fixture
def sample_record(png_data_uri):
    return {
        "fullName": "JANE DOE",
        "refNo": "TK-101",
        "dob": "2000-06-15",
        "langEnglishFluent": True,
        "skillCooking": True,
        "photos": {"face": png_data_uri, "full": None, "passport": None},
    }

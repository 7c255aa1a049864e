"""Unit tests for the field catalog."""

import pytest

from cvstudio.schemas.template import CustomTemplate, FieldCategory, FieldType, TemplateField
from cvstudio.services.field_catalog import FieldCatalog, field_catalog


def _template(*keys, custom_label=None):
    return CustomTemplate(
        fields=[TemplateField(key=key, custom_label=custom_label) for key in keys],
    )


@pytest.mark.unit
def test_lookup_known_key():
    entry = field_catalog.lookup("photoFace")

    assert entry is not None
    assert entry.label == "Face Photo"
    assert entry.default_type == FieldType.IMAGE


@pytest.mark.unit
def test_lookup_unknown_key_is_absent():
    assert field_catalog.lookup("favouriteColour") is None


@pytest.mark.unit
def test_default_types_by_group():
    assert field_catalog.lookup("langArabicFair").default_type == FieldType.BOOLEAN
    assert field_catalog.lookup("skillIroning").default_type == FieldType.CHECKMARK
    assert field_catalog.lookup("passportNumber").category == FieldCategory.PASSPORT


@pytest.mark.unit
def test_catalog_covers_experience_and_custom_slots():
    keys = field_catalog.keys()

    for i in range(1, 5):
        assert f"expCountry{i}" in keys
        assert f"expPosition{i}" in keys
    assert "customField1" in keys
    assert "customField10" in keys
    assert "customField11" not in keys


@pytest.mark.unit
def test_used_by_any():
    templates = [_template("fullName"), _template("expCountry2", "refNo")]

    assert FieldCatalog.used_by_any(templates, "refNo") is True
    assert FieldCatalog.used_by_any(templates, "dob") is False
    assert FieldCatalog.used_by_any([], "fullName") is False


@pytest.mark.unit
def test_search_filters_by_label():
    groups = field_catalog.search("passport")
    labels = [entry.label for _, entries in groups for entry in entries]

    assert "Passport No" in labels
    assert "Passport Photo" in labels
    assert all("passport" in label.lower() for label in labels)


@pytest.mark.unit
def test_empty_search_returns_everything():
    groups = field_catalog.search("")

    assert len(groups) == len(field_catalog.groups)


@pytest.mark.unit
def test_custom_label_for_first_match():
    templates = [_template("customField1"), _template("customField1", custom_label="DRIVING LICENSE")]

    assert FieldCatalog.custom_label_for(templates, "customField1") == "DRIVING LICENSE"
    assert FieldCatalog.custom_label_for(templates, "customField2") is None

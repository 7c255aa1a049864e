"""
Field Catalog
Static registry of the field keys the editor palette offers
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from cvstudio.schemas.template import CustomTemplate, FieldCategory, FieldType


@dataclass(frozen=True)
class CatalogEntry:
    key: str
    label: str
    default_type: FieldType
    category: FieldCategory


def _entries(category: FieldCategory, field_type: FieldType, *pairs: Tuple[str, str]) -> List[CatalogEntry]:
    return [CatalogEntry(key, label, field_type, category) for key, label in pairs]


def _experience_entries(records: int) -> List[CatalogEntry]:
    entries = []
    for i in range(1, records + 1):
        entries += _entries(
            FieldCategory.EXPERIENCE, FieldType.TEXT,
            (f"expCountry{i}", f"Country {i}"),
            (f"expPeriod{i}", f"Period {i}"),
            (f"expPosition{i}", f"Position {i}"),
        )
    return entries


FIELD_GROUPS: List[Tuple[str, List[CatalogEntry]]] = [
    ("1. Photos", _entries(
        FieldCategory.PERSONAL, FieldType.IMAGE,
        ("photoFace", "Face Photo"),
        ("photoFull", "Full Body Photo"),
        ("photoPassport", "Passport Photo"),
    )),
    ("2. Position & Salary", _entries(
        FieldCategory.PERSONAL, FieldType.TEXT,
        ("currentDate", "Today's Date"),
        ("officeName", "Office Name (Auto)"),
        ("positionApplied", "Applied Position"),
        ("refNo", "Ref No"),
        ("monthlySalary", "Monthly Salary"),
    )),
    ("3. Personal Details", _entries(
        FieldCategory.PERSONAL, FieldType.TEXT,
        ("fullName", "Full Name"),
        ("religion", "Religion"),
        ("dob", "Date of Birth"),
        ("age", "Age"),
        ("pob", "Place of Birth"),
        ("maritalStatus", "Marital Status"),
        ("children", "Children"),
        ("education", "Education"),
        ("height", "Height"),
        ("weight", "Weight"),
    )),
    ("4. Passport Details", _entries(
        FieldCategory.PASSPORT, FieldType.TEXT,
        ("passportNumber", "Passport No"),
        ("issueDate", "Issue Date"),
        ("expiryDate", "Expiry Date"),
        ("placeOfIssue", "Place of Issue"),
    )),
    ("5. Language Proficiency", _entries(
        FieldCategory.SKILLS, FieldType.BOOLEAN,
        ("langEnglishPoor", "English: Poor"),
        ("langEnglishFair", "English: Fair"),
        ("langEnglishFluent", "English: Fluent"),
        ("langArabicPoor", "Arabic: Poor"),
        ("langArabicFair", "Arabic: Fair"),
        ("langArabicFluent", "Arabic: Fluent"),
    )),
    ("6. Previous Employment (All Records)", _experience_entries(4)),
    ("7. Skills & Performance", _entries(
        FieldCategory.SKILLS, FieldType.CHECKMARK,
        ("skillWashing", "Washing"),
        ("skillCooking", "Cooking"),
        ("skillBabyCare", "Baby Care"),
        ("skillCleaning", "Cleaning"),
        ("skillIroning", "Ironing"),
        ("skillSewing", "Sewing"),
    )),
    ("8. Contact Person", _entries(
        FieldCategory.CONTACT, FieldType.TEXT,
        ("contactName", "Contact Name"),
        ("contactAddress", "Contact Address"),
        ("contactRelation", "Relationship"),
        ("contactPhone", "Contact Phone"),
    )),
    ("9. Custom Fields", _entries(
        FieldCategory.CUSTOM, FieldType.TEXT,
        *[(f"customField{i}", f"Custom {i}") for i in range(1, 11)]
    )),
]


class FieldCatalog:
    """Lookup and existence checks over the static field registry"""

    def __init__(self, groups: List[Tuple[str, List[CatalogEntry]]] = None):
        self.groups = groups if groups is not None else FIELD_GROUPS
        self._by_key: Dict[str, CatalogEntry] = {
            entry.key: entry for _, entries in self.groups for entry in entries
        }

    def lookup(self, key: str) -> Optional[CatalogEntry]:
        return self._by_key.get(key)

    def keys(self) -> List[str]:
        return list(self._by_key)

    def search(self, term: str) -> List[Tuple[str, List[CatalogEntry]]]:
        """Palette filter: groups with entries whose label contains the term"""
        needle = (term or "").strip().lower()
        result = []
        for title, entries in self.groups:
            matched = [e for e in entries if needle in e.label.lower()]
            if matched:
                result.append((title, matched))
        return result

    @staticmethod
    def used_by_any(templates: Iterable[CustomTemplate], key: str) -> bool:
        """True when any template places a field bound to `key`"""
        return any(f.key == key for t in templates for f in t.fields)

    @staticmethod
    def used_keys(templates: Iterable[CustomTemplate]) -> set:
        return {f.key for t in templates for f in t.fields}

    @staticmethod
    def custom_label_for(templates: Iterable[CustomTemplate], key: str) -> Optional[str]:
        """First user-defined label for a key across templates"""
        for template in templates:
            for field in template.fields:
                if field.key == key and field.custom_label:
                    return field.custom_label
        return None


# Create singleton instance
field_catalog = FieldCatalog()

"""
Candidate records and user profiles for recommendation scoring.

Candidates are a tagged union of two explicit record types, Lawyer and
Resource, each carrying a precomputed embedding (384 dimensions in the
shipped datasets). Datasets are JSON files holding either a list of records
or a mapping from ID to record; the capitalized dataset keys (Name,
Specialty, FeeStructure, ...) and snake_case keys are both accepted.
"""

import json
import logging
from enum import Enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

CANDIDATE_EMBEDDING_DIMENSIONS = 384


class Demographic(str, Enum):
    """Self-identified demographic flags from the intake form."""
    FIRST_NATION = "first_nation"
    LGBTQ = "lgbtq"
    DISABILITY = "disability"
    SENIOR = "senior"
    LOW_INCOME = "low_income"
    VISIBLE_MINORITY = "visible_minority"


@dataclass(frozen=True)
class UserProfile:
    """Per-request description of the user. Never persisted."""
    query: str
    legal_type: Optional[str] = None
    location: Optional[str] = None
    demographics: frozenset = frozenset()

    def has(self, flag: Demographic) -> bool:
        return flag in self.demographics

    @classmethod
    def from_form(cls, form: dict) -> "UserProfile":
        """Build a profile from intake form fields (camelCase or snake_case)."""
        flag_keys = {
            Demographic.FIRST_NATION: ("firstNation", "first_nation"),
            Demographic.LGBTQ: ("lgbtq",),
            Demographic.DISABILITY: ("disability",),
            Demographic.SENIOR: ("senior",),
            Demographic.LOW_INCOME: ("lowIncome", "low_income"),
            Demographic.VISIBLE_MINORITY: ("visibleMinority", "visible_minority"),
        }
        flags = {
            flag for flag, keys in flag_keys.items()
            if any(form.get(k) for k in keys)
        }
        return cls(
            query=form.get("legalMatter") or form.get("legal_matter") or form.get("query") or "",
            legal_type=form.get("legalType") or form.get("legal_type"),
            location=form.get("location"),
            demographics=frozenset(flags),
        )


@dataclass(frozen=True)
class Contact:
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None


@dataclass
class Lawyer:
    """A lawyer candidate."""
    id: str
    name: str
    specialty: Optional[str] = None
    location: Optional[str] = None
    fee_structure: Optional[str] = None
    languages: list[str] = field(default_factory=list)
    contact: Contact = field(default_factory=Contact)
    embedding: Optional[list[float]] = None

    kind = "lawyer"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "email": self.contact.email,
            "phone": self.contact.phone,
            "location": self.location,
            "specialty": self.specialty,
            "fee_structure": self.fee_structure,
            "languages": self.languages,
            "website": self.contact.website,
        }


@dataclass
class Resource:
    """A legal information resource (guide, pamphlet, statute excerpt)."""
    id: str
    source: str
    text: str
    embedding: Optional[list[float]] = None

    kind = "resource"

    def preview(self, length: int = 200) -> str:
        return self.text[:length] + "..."

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "text": self.preview(),
        }


Candidate = Union[Lawyer, Resource]


def _field(record: dict, *keys: str):
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _parse_languages(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [lang.strip() for lang in value.split(",") if lang.strip()]
    return [str(lang) for lang in value]


def lawyer_from_record(record_id: str, record: dict) -> Lawyer:
    """Build a Lawyer from a dataset record."""
    return Lawyer(
        id=str(_field(record, "id", "ID") or record_id),
        name=_field(record, "Name", "name") or "Unknown",
        specialty=_field(record, "Specialty", "specialty"),
        location=_field(record, "Location", "location"),
        fee_structure=_field(record, "FeeStructure", "fee_structure", "feeStructure"),
        languages=_parse_languages(_field(record, "Languages", "languages")),
        contact=Contact(
            email=_field(record, "Email", "email"),
            phone=_field(record, "Phone", "phone"),
            website=_field(record, "Website", "website"),
        ),
        embedding=_field(record, "embedding"),
    )


def resource_from_record(record_id: str, record: dict) -> Resource:
    """Build a Resource from a dataset record."""
    return Resource(
        id=str(_field(record, "id", "ID") or record_id),
        source=_field(record, "source", "Source") or "Unknown source",
        text=_field(record, "text", "Text") or "",
        embedding=_field(record, "embedding"),
    )


def _iter_records(data) -> list[tuple[str, dict]]:
    if isinstance(data, dict):
        records = [(str(k), v) for k, v in data.items()]
    elif isinstance(data, list):
        records = [(str(i), v) for i, v in enumerate(data)]
    else:
        raise ValueError(f"Unsupported dataset shape: {type(data).__name__}")

    for record_id, record in records:
        if not isinstance(record, dict):
            raise ValueError(f"Record {record_id} is a {type(record).__name__}, expected an object")
    return records


def load_lawyers(path: Union[str, Path]) -> list[Lawyer]:
    """
    Load lawyers from a JSON dataset.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the JSON is invalid or has an unsupported shape
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    lawyers = [lawyer_from_record(rid, rec) for rid, rec in _iter_records(data)]
    logger.info(f"Loaded {len(lawyers)} lawyers from {path}")
    return lawyers


def load_resources(path: Union[str, Path]) -> list[Resource]:
    """
    Load resources from a JSON dataset.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the JSON is invalid or has an unsupported shape
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    resources = [resource_from_record(rid, rec) for rid, rec in _iter_records(data)]
    logger.info(f"Loaded {len(resources)} resources from {path}")
    return resources


@dataclass
class CandidatePool:
    """Lawyers and resources available for ranking, with load provenance."""
    lawyers: list[Lawyer] = field(default_factory=list)
    resources: list[Resource] = field(default_factory=list)
    degraded: bool = False
    degraded_reason: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.lawyers and not self.resources

    def replace(
        self,
        lawyers: list[Lawyer],
        resources: list[Resource],
        degraded: bool = False,
        degraded_reason: Optional[str] = None,
    ) -> None:
        self.lawyers = list(lawyers)
        self.resources = list(resources)
        self.degraded = degraded
        self.degraded_reason = degraded_reason

"""Report records and the value objects passed between components.

The ``Report`` table is the only persisted entity. Everything handed back to
callers is a ``ReportView`` snapshot so rows never escape their session.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

import numpy as np
from sqlmodel import Field, SQLModel

from lost_trace.errors import ValidationError
from lost_trace.signature import signature_from_json

VALID_GENDERS = ("male", "female", "other")
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 2000
MAX_AGE = 150


class ReportStatus(str, Enum):
    """Lifecycle of a report: OPEN until matched at creation time."""

    OPEN = "open"
    MATCHED = "matched"

    @classmethod
    def parse(cls, value: str) -> Union["ReportStatus", str]:
        """Return the known status for value, or value itself.

        Other parts of the system may close or resolve cases; those statuses
        are carried through verbatim.
        """
        try:
            return cls(value)
        except ValueError:
            return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Report(SQLModel, table=True):
    """A missing/found-person report as stored in the database."""

    id: str = Field(default_factory=_new_id, primary_key=True)
    person_name: str
    age: int
    gender: Optional[str] = None
    description: Optional[str] = None
    image_url: str
    image_public_id: Optional[str] = None
    signature: Optional[str] = None  # JSON array of 128 floats
    status: str = Field(default=ReportStatus.OPEN.value, index=True)
    matched_with_id: Optional[str] = Field(default=None, index=True)
    submitted_by_id: str = Field(index=True)
    submitted_at: datetime = Field(default_factory=_utcnow, index=True)


@dataclass
class ReportFields:
    """Descriptive fields of a submission, validated on construction.

    Attributes:
        person_name: Name of the missing or found person (required)
        age: Age in years, 0..150 (digit strings are accepted)
        gender: Optional "male", "female" or "other"
        description: Optional free text

    Raises:
        ValidationError: If a field is missing or malformed.
    """

    person_name: str
    age: int
    gender: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Normalize and validate fields after initialization."""
        if not isinstance(self.person_name, str) or not self.person_name.strip():
            raise ValidationError("person_name is required")
        self.person_name = self.person_name.strip()
        if len(self.person_name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"person_name must be at most {MAX_NAME_LENGTH} characters"
            )

        if isinstance(self.age, bool):
            raise ValidationError("age must be an integer")
        if isinstance(self.age, str):
            if not self.age.strip().isdigit():
                raise ValidationError(f"age must be an integer, got '{self.age}'")
            self.age = int(self.age.strip())
        if not isinstance(self.age, int):
            raise ValidationError("age must be an integer")
        if not 0 <= self.age <= MAX_AGE:
            raise ValidationError(f"age must be between 0 and {MAX_AGE}, got {self.age}")

        if self.gender is not None:
            gender = str(self.gender).strip().lower()
            if gender not in VALID_GENDERS:
                raise ValidationError(
                    f"gender must be one of {list(VALID_GENDERS)}, got '{self.gender}'"
                )
            self.gender = gender

        if self.description is not None:
            self.description = str(self.description).strip() or None
            if self.description and len(self.description) > MAX_DESCRIPTION_LENGTH:
                raise ValidationError(
                    f"description must be at most {MAX_DESCRIPTION_LENGTH} characters"
                )

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "ReportFields":
        """Build fields from a request-like mapping, ignoring unknown keys."""
        if "person_name" not in data or "age" not in data:
            raise ValidationError("person_name and age are required")
        return cls(
            person_name=data["person_name"],
            age=data["age"],
            gender=data.get("gender") or None,
            description=data.get("description"),
        )


@dataclass(frozen=True)
class ReportView:
    """Read-only snapshot of a report's public fields."""

    id: str
    person_name: str
    age: int
    gender: Optional[str]
    description: Optional[str]
    image_url: str
    status: Union[ReportStatus, str]
    matched_with_id: Optional[str]
    submitted_by_id: str
    submitted_at: datetime
    signature_present: bool = False

    @classmethod
    def from_row(cls, row: Report) -> "ReportView":
        return cls(
            id=row.id,
            person_name=row.person_name,
            age=row.age,
            gender=row.gender,
            description=row.description,
            image_url=row.image_url,
            status=ReportStatus.parse(row.status),
            matched_with_id=row.matched_with_id,
            submitted_by_id=row.submitted_by_id,
            submitted_at=row.submitted_at,
            signature_present=signature_from_json(row.signature) is not None,
        )

    @property
    def status_name(self) -> str:
        if isinstance(self.status, ReportStatus):
            return self.status.value
        return self.status

    def public_fields(self) -> Dict[str, Any]:
        """Fields shown alongside a match: name, age, gender, image, status, time."""
        return {
            "id": self.id,
            "person_name": self.person_name,
            "age": self.age,
            "gender": self.gender,
            "image_url": self.image_url,
            "status": self.status_name,
            "submitted_at": self.submitted_at.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.public_fields()
        data.update(
            description=self.description,
            matched_with_id=self.matched_with_id,
            submitted_by_id=self.submitted_by_id,
        )
        return data


@dataclass
class GalleryEntry:
    """A stored report as seen by a match search.

    Attributes:
        id: Report id
        signature: Decoded signature, or None if the stored one is not comparable
        view: Snapshot of the report at scan time
    """

    id: str
    signature: Optional[np.ndarray]
    view: ReportView = field(repr=False)


@dataclass(frozen=True)
class StoredImage:
    """Locator and provider id of a stored report photo."""

    url: str
    public_id: str

"""
Submission payload schemas, one per bulk job type.

Payloads are validated before an operation record exists; a payload that
fails here never produces a record.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from skillconnect.db.filters import DOCUMENT_FIELDS, validate_filters

ObjectId = Annotated[str, StringConstraints(pattern=r"^[0-9a-fA-F]{24}$")]

DEFAULT_EXPORT_FIELDS = [
    "firstName",
    "lastName",
    "email",
    "phone",
    "roles",
    "account.status",
    "verification.email.isVerified",
    "createdAt",
]

CSV_CONTENT_TYPES = frozenset({"text/csv", "application/vnd.ms-excel", "application/csv"})


class _Parameters(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def stored(self) -> Dict[str, Any]:
        """JSON-safe form kept on the operation record."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ImportParameters(_Parameters):
    file_name: str = Field(min_length=1)
    content: bytes
    content_type: Optional[str] = None

    @field_validator("content")
    @classmethod
    def _not_empty(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError("Uploaded file is empty")
        return value

    @field_validator("content_type")
    @classmethod
    def _csv_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        base = value.split(";")[0].strip().lower()
        # Browsers send octet-stream for unknown extensions; the file name decides then
        if base and base not in CSV_CONTENT_TYPES and base != "application/octet-stream":
            raise ValueError("Only CSV files are allowed")
        return value

    @field_validator("file_name")
    @classmethod
    def _csv_name(cls, value: str) -> str:
        if not value.lower().endswith(".csv"):
            raise ValueError("Only CSV files are allowed")
        return value

    def stored(self) -> Dict[str, Any]:
        return {"fileName": self.file_name, "size": len(self.content)}


class ExportParameters(_Parameters):
    filters: Dict[str, Any] = Field(default_factory=dict)
    fields: List[str] = Field(default_factory=list)

    @field_validator("filters")
    @classmethod
    def _known_filters(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        validate_filters(value)
        return value

    @field_validator("fields")
    @classmethod
    def _known_fields(cls, value: List[str]) -> List[str]:
        unknown = [f for f in value if f not in DOCUMENT_FIELDS]
        if unknown:
            raise ValueError(f"Unknown export fields: {', '.join(unknown)}")
        return value

    def export_fields(self) -> List[str]:
        return list(self.fields) if self.fields else list(DEFAULT_EXPORT_FIELDS)


class BulkUpdatePatch(_Parameters):
    roles: Optional[List[Literal["mentee", "mentor"]]] = Field(default=None, min_length=1)
    status: Optional[Literal["active", "inactive", "suspended"]] = None
    suspension_reason: Optional[str] = None


class BulkUpdateParameters(_Parameters):
    user_ids: List[ObjectId] = Field(min_length=1)
    updates: BulkUpdatePatch


class BulkDeleteParameters(_Parameters):
    user_ids: List[ObjectId] = Field(min_length=1)


class BulkEmailParameters(_Parameters):
    recipients: List[ObjectId] = Field(min_length=1)
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)
    template: Optional[str] = None


PARAMETER_MODELS = {
    "import": ImportParameters,
    "export": ExportParameters,
    "bulk_update": BulkUpdateParameters,
    "bulk_delete": BulkDeleteParameters,
    "bulk_email": BulkEmailParameters,
}

JOB_TYPES = tuple(PARAMETER_MODELS)

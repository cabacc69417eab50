"""Core data models for complaints, change events and results."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from intake.errors import ErrorKind
from intake.utils.phone import normalize_phone


CONNECTION_CHANGE_EVENT = "supabaseConnectionChange"

REQUIRED_FIELDS: tuple[str, ...] = (
    "name",
    "phone",
    "district",
    "village",
    "address",
    "category",
    "body",
)


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ComplaintDraft(BaseModel):
    """Complaint as submitted from the intake form, before validation."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: str = ""
    phone: str = ""
    district: str = ""
    village: str = ""
    address: str = ""
    category: str = ""
    body: str = ""

    def normalized(self) -> "ComplaintDraft":
        """Return a trimmed copy with the phone number in local format."""
        trimmed = {field: (getattr(self, field) or "").strip() for field in REQUIRED_FIELDS}
        trimmed["phone"] = normalize_phone(trimmed["phone"]) or ""
        return ComplaintDraft(**trimmed)


class Complaint(BaseModel):
    """Stored complaint row. Aliases are the table's column names."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[Any] = None
    name: str = Field(alias="nama")
    phone: str = Field(alias="nomor_hp")
    district: str = Field(alias="kecamatan")
    village: str = Field(alias="desa")
    address: str = Field(alias="alamat")
    category: str = Field(alias="kategori")
    body: str = Field(alias="isi_aduan")
    status: ComplaintStatus = ComplaintStatus.PENDING
    resolution_notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    actual_completion: Optional[str] = None

    @classmethod
    def from_draft(cls, draft: ComplaintDraft, created_at: str) -> "Complaint":
        return cls(
            name=draft.name,
            phone=draft.phone,
            district=draft.district,
            village=draft.village,
            address=draft.address,
            category=draft.category,
            body=draft.body,
            status=ComplaintStatus.PENDING,
            created_at=created_at,
        )

    def to_insert_row(self) -> dict[str, Any]:
        """Columns sent on insert; the id and unset timestamps are left to the database."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"id", "updated_at", "actual_completion", "resolution_notes"},
        )


class StatusUpdate(BaseModel):
    """Columns written by a status change."""

    status: ComplaintStatus
    updated_at: str
    resolution_notes: Optional[str] = None
    actual_completion: Optional[str] = None

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ChangeEvent(BaseModel):
    """Row change notification forwarded to subscribers."""

    event_type: str
    table: Optional[str] = None
    schema_name: Optional[str] = None
    record: dict[str, Any] = Field(default_factory=dict)
    old_record: dict[str, Any] = Field(default_factory=dict)
    commit_timestamp: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChangeEvent":
        """Normalize a realtime payload (flat or wrapped in ``data``)."""
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        return cls(
            event_type=str(data.get("type") or data.get("eventType") or "UNKNOWN").upper(),
            table=data.get("table"),
            schema_name=data.get("schema"),
            record=data.get("record") or data.get("new") or {},
            old_record=data.get("old_record") or data.get("old") or {},
            commit_timestamp=data.get("commit_timestamp"),
            payload=payload,
        )


class ConnectionEvent(BaseModel):
    """Broadcast on every connection state transition."""

    name: str = CONNECTION_CHANGE_EVENT
    status: ConnectionState
    error: Optional[str] = None
    timestamp: int


class OperationResult(BaseModel):
    """Uniform outcome of a service operation."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        data: Any = None,
    ) -> "OperationResult":
        return cls(success=False, data=data, error=error, error_kind=kind)

    def to_dict(self) -> dict[str, Any]:
        """Envelope form: ``{success, data?, error?}``."""
        envelope: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            if isinstance(self.data, BaseModel):
                envelope["data"] = self.data.model_dump(mode="json", by_alias=True)
            elif isinstance(self.data, list):
                envelope["data"] = [
                    item.model_dump(mode="json", by_alias=True)
                    if isinstance(item, BaseModel)
                    else item
                    for item in self.data
                ]
            else:
                envelope["data"] = self.data
        if self.error is not None:
            envelope["error"] = self.error
        return envelope

"""Record schemas for users, agronomy rows and farm report rows."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class Role(str, Enum):
    VIEWER = "Viewer"
    SUPERVISOR = "Supervisor"
    AGRONOMIST = "Agronomist"
    GENERAL_MANAGER = "GeneralManager"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        try:
            return cls(str(value))
        except ValueError:
            return None


ALL_ROLES: Tuple[Role, ...] = tuple(Role)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller of a request."""

    username: str
    role: Role


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Any) -> Optional[datetime]:
    s = str(value or "").strip()
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def coerce_id(value: Any) -> Optional[int]:
    """Integer identifier from an int, an integral float or a digit string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    s = str(value).strip()
    if not s:
        return None
    try:
        f = float(s)
    except ValueError:
        return None
    if math.isfinite(f) and f.is_integer():
        return int(f)
    return None


def coerce_number(value: Any) -> float | int:
    """Numeric value or 0 when the input is not a finite number."""
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(f):
        return 0
    return int(f) if f.is_integer() else f


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@dataclass
class User:
    id: int
    username: str
    password: str
    role: str
    payrollNumber: str
    createdAt: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        return cls(
            id=coerce_id(data.get("id")) or 0,
            username=str(data.get("username") or ""),
            password=str(data.get("password") or ""),
            role=str(data.get("role") or ""),
            payrollNumber=str(data.get("payrollNumber") or ""),
            createdAt=str(data.get("createdAt") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "password": self.password,
            "role": self.role,
            "payrollNumber": self.payrollNumber,
            "createdAt": self.createdAt,
        }


# ---------------------------------------------------------------------------
# Agronomy (spray program) rows
# ---------------------------------------------------------------------------

DAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
DAY_FIELDS = ("Rate", "Vol", "Chemical", "Area", "Mode")

HEADER_FIELDS = ("farm", "gh", "area", "crop", "variety", "mode", "method", "time")
TRAILING_FIELDS = (
    "target",
    "justification",
    "morning",
    "evening",
    "preparedBy",
    "agronomistRemarks",
    "supervisorRemarks",
)

AGRONOMY_FIELDS: Tuple[str, ...] = (
    HEADER_FIELDS
    + tuple(f"{day}{part}" for day in DAYS for part in DAY_FIELDS)
    + TRAILING_FIELDS
)

SUPERVISOR_REMARKS = "supervisorRemarks"

# Used to match imported rows that carry no identifier
COMPOSITE_KEY_FIELDS = ("farm", "gh", "crop", "variety", "time")


def _text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class AgronomyRow:
    """A spray-program row.

    `fields` only holds the schema fields that were supplied, so an omitted
    field (absent key) stays distinguishable from an empty one ("") while
    merging. `to_dict` always emits the full schema, omitted fields as "".
    """

    id: Optional[int] = None
    fields: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AgronomyRow":
        fields: Dict[str, str] = {}
        for name in AGRONOMY_FIELDS:
            if name in data and data[name] is not None:
                fields[name] = _text(data[name])
        return cls(id=coerce_id(data.get("id")), fields=fields)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id}
        for name in AGRONOMY_FIELDS:
            out[name] = self.fields.get(name, "")
        return out

    def has(self, name: str) -> bool:
        return name in self.fields

    def composite_key(self) -> Optional[Tuple[str, ...]]:
        parts = tuple(self.fields.get(name, "").strip().lower() for name in COMPOSITE_KEY_FIELDS)
        if not all(parts):
            return None
        return parts


def merge_rows(existing: AgronomyRow, incoming: AgronomyRow) -> AgronomyRow:
    """Shallow merge: supplied incoming fields win, omitted ones keep their value."""
    merged = dict(existing.fields)
    merged.update(incoming.fields)
    return AgronomyRow(id=existing.id, fields=merged)


def replace_row(existing: AgronomyRow, incoming: AgronomyRow) -> AgronomyRow:
    """Full replacement that still keeps the stored supervisor remark unless a
    non-empty one is supplied."""
    fields = dict(incoming.fields)
    if not fields.get(SUPERVISOR_REMARKS):
        fields[SUPERVISOR_REMARKS] = existing.fields.get(SUPERVISOR_REMARKS, "")
    return AgronomyRow(id=existing.id, fields=fields)


# ---------------------------------------------------------------------------
# Farm report (inspection) rows
# ---------------------------------------------------------------------------

FARM_REPORT_TEXT_FIELDS = (
    "year",
    "weekRange",
    "farm",
    "greenhouse",
    "bed",
    "crop",
    "variety",
    "pest",
    "disease",
)
FARM_REPORT_RATE_FIELDS = ("pestRate", "diseaseRate")
FARM_REPORT_REQUIRED = ("weekRange", "farm", "greenhouse")


@dataclass
class FarmReportRow:
    id: int
    year: str = ""
    weekRange: str = ""
    farm: str = ""
    greenhouse: str = ""
    bed: str = ""
    crop: str = ""
    variety: str = ""
    pest: str = ""
    disease: str = ""
    pestRate: float | int = 0
    diseaseRate: float | int = 0
    createdAt: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], row_id: int, created_at: str) -> "FarmReportRow":
        text = {name: str(payload.get(name) or "").strip() for name in FARM_REPORT_TEXT_FIELDS}
        rates = {name: coerce_number(payload.get(name)) for name in FARM_REPORT_RATE_FIELDS}
        return cls(id=row_id, createdAt=created_at, **text, **rates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "year": self.year,
            "weekRange": self.weekRange,
            "farm": self.farm,
            "greenhouse": self.greenhouse,
            "bed": self.bed,
            "crop": self.crop,
            "variety": self.variety,
            "pest": self.pest,
            "disease": self.disease,
            "pestRate": self.pestRate,
            "diseaseRate": self.diseaseRate,
            "createdAt": self.createdAt,
        }


def parse_week_range(value: Any) -> Optional[Tuple[int, int]]:
    """Parse "<start>-<end>" (or a single week number) into (start, end)."""
    s = str(value if value is not None else "").strip()
    if not s:
        return None
    if "-" in s:
        head, _, tail = s.partition("-")
        try:
            start, end = int(head.strip()), int(tail.strip())
        except ValueError:
            start = end = None
        if start is not None and end is not None:
            return (start, end) if start <= end else (end, start)
    try:
        week = int(s)
    except ValueError:
        return None
    return week, week

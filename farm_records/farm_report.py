"""Farm inspection report store: append-only rows with search, chart and export."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import BadRequest
from .json_store import JsonFileStore, max_id
from .models import (
    FARM_REPORT_REQUIRED,
    FarmReportRow,
    coerce_id,
    coerce_number,
    parse_iso,
    parse_week_range,
    utc_now_iso,
)
from .spreadsheets import write_workbook

logger = logging.getLogger(__name__)

EXACT_FILTER_FIELDS = ("year", "farm", "greenhouse", "bed", "crop", "variety", "pest", "disease")

EXPORT_SHEET_NAME = "FarmReport"
EXPORT_COLUMNS = (
    ("ID", "id"),
    ("Year", "year"),
    ("Week Range", "weekRange"),
    ("Farm", "farm"),
    ("Greenhouse", "greenhouse"),
    ("Bed", "bed"),
    ("Crop", "crop"),
    ("Variety", "variety"),
    ("Pest", "pest"),
    ("Disease", "disease"),
    ("Pest Rate", "pestRate"),
    ("Disease Rate", "diseaseRate"),
)
LOCAL_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _optional_float(value: Any) -> Optional[float]:
    s = str(value if value is not None else "").strip()
    if not s:
        return None
    try:
        f = float(s)
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def _optional_int(value: Any) -> Optional[int]:
    f = _optional_float(value)
    if f is None:
        return None
    return int(f)


@dataclass
class FarmReportFilters:
    exact: Dict[str, str] = field(default_factory=dict)
    pest_rate_min: Optional[float] = None
    pest_rate_max: Optional[float] = None
    disease_rate_min: Optional[float] = None
    disease_rate_max: Optional[float] = None
    week_from: Optional[int] = None
    week_to: Optional[int] = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "FarmReportFilters":
        exact = {}
        for name in EXACT_FILTER_FIELDS:
            value = str(args.get(name) or "").strip()
            if value:
                exact[name] = value.lower()
        return cls(
            exact=exact,
            pest_rate_min=_optional_float(args.get("pestRateMin")),
            pest_rate_max=_optional_float(args.get("pestRateMax")),
            disease_rate_min=_optional_float(args.get("diseaseRateMin")),
            disease_rate_max=_optional_float(args.get("diseaseRateMax")),
            week_from=_optional_int(args.get("weekFrom")),
            week_to=_optional_int(args.get("weekTo")),
        )

    @property
    def filters_weeks(self) -> bool:
        return self.week_from is not None or self.week_to is not None

    def matches(self, row: Mapping[str, Any]) -> bool:
        for name, wanted in self.exact.items():
            if str(row.get(name) or "").strip().lower() != wanted:
                return False

        pest_rate = coerce_number(row.get("pestRate"))
        disease_rate = coerce_number(row.get("diseaseRate"))
        if self.pest_rate_min is not None and pest_rate < self.pest_rate_min:
            return False
        if self.pest_rate_max is not None and pest_rate > self.pest_rate_max:
            return False
        if self.disease_rate_min is not None and disease_rate < self.disease_rate_min:
            return False
        if self.disease_rate_max is not None and disease_rate > self.disease_rate_max:
            return False

        if self.filters_weeks:
            weeks = parse_week_range(row.get("weekRange"))
            if weeks is None:
                return False
            start, end = weeks
            if self.week_to is not None and start > self.week_to:
                return False
            if self.week_from is not None and end < self.week_from:
                return False
        return True


def _newest_first_key(row: Mapping[str, Any]):
    return (parse_iso(row.get("createdAt")) or _OLDEST, coerce_id(row.get("id")) or 0)


def _week_order_key(row: Mapping[str, Any]):
    weeks = parse_week_range(row.get("weekRange"))
    return (weeks is None, weeks[0] if weeks else 0, coerce_id(row.get("id")) or 0)


class FarmReportStore:
    def __init__(self, store: JsonFileStore, timezone_name: str = "UTC"):
        self.store = store
        try:
            self.tz = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{timezone_name}', exporting timestamps in UTC")
            self.tz = timezone.utc

    def all(self) -> List[Dict[str, Any]]:
        return [r for r in self.store.read() if isinstance(r, dict)]

    def append(self, payload: Mapping[str, Any]) -> int:
        if not isinstance(payload, Mapping):
            raise BadRequest("Expected a JSON object")
        if any(not str(payload.get(name) or "").strip() for name in FARM_REPORT_REQUIRED):
            raise BadRequest("weekRange, farm, greenhouse required")

        with self.store.update() as records:
            row_id = max_id(records) + 1
            row = FarmReportRow.from_payload(payload, row_id=row_id, created_at=utc_now_iso())
            records.append(row.to_dict())

        logger.info(f"Appended farm report row {row_id} ({row.farm}/{row.greenhouse}, weeks {row.weekRange})")
        return row_id

    def search(self, filters: FarmReportFilters) -> List[Dict[str, Any]]:
        """Matching rows, newest first (by createdAt, then id)."""
        rows = [r for r in self.all() if filters.matches(r)]
        rows.sort(key=_newest_first_key, reverse=True)
        return rows

    def chart_series(self, filters: FarmReportFilters) -> List[Dict[str, Any]]:
        """Matching rows ordered by week for trend charts."""
        rows = [r for r in self.all() if filters.matches(r)]
        rows.sort(key=_week_order_key)
        series = []
        for r in rows:
            weeks = parse_week_range(r.get("weekRange"))
            series.append(
                {
                    **r,
                    "weekStart": weeks[0] if weeks else None,
                    "weekEnd": weeks[1] if weeks else None,
                }
            )
        return series

    def format_local(self, iso_value: Any) -> str:
        dt = parse_iso(iso_value)
        if dt is None:
            return ""
        return dt.astimezone(self.tz).strftime(LOCAL_TIME_FORMAT)

    def export(self, filters: FarmReportFilters) -> bytes:
        rows = self.search(filters)
        headers = [label for label, _ in EXPORT_COLUMNS] + ["Created (Local)", "Created At (ISO)"]
        values = (
            [r.get(key, "") for _, key in EXPORT_COLUMNS]
            + [self.format_local(r.get("createdAt")), str(r.get("createdAt") or "")]
            for r in rows
        )
        return write_workbook(EXPORT_SHEET_NAME, headers, values)

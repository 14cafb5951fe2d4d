"""Spray-program (agronomy) record store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .errors import BadRequest, NotFound
from .json_store import JsonFileStore
from .models import (
    AGRONOMY_FIELDS,
    SUPERVISOR_REMARKS,
    AgronomyRow,
    coerce_id,
    merge_rows,
    replace_row,
)
from .spreadsheets import normalize_agronomy_row, write_workbook

logger = logging.getLogger(__name__)

EXPORT_SHEET_NAME = "AgronomistData"
EXPORT_HEADERS = ("id",) + AGRONOMY_FIELDS


@dataclass
class AgronomyFilters:
    q: str = ""
    farm: str = ""
    gh: str = ""
    time: str = ""

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "AgronomyFilters":
        def get(*names: str) -> str:
            for name in names:
                value = str(args.get(name) or "").strip()
                if value:
                    return value
            return ""

        return cls(q=get("q"), farm=get("farm"), gh=get("gh", "greenhouse"), time=get("time"))

    def matches(self, record: Mapping[str, Any]) -> bool:
        if self.q:
            needle = self.q.lower()
            if not any(needle in str(v).lower() for v in record.values() if v is not None):
                return False
        for name in ("farm", "gh", "time"):
            wanted = getattr(self, name)
            if wanted and str(record.get(name) or "").strip().lower() != wanted.lower():
                return False
        return True


@dataclass
class ImportResult:
    count: int
    created: int
    replaced: int
    duplicates: int = 0


def _highest_id(rows: Sequence[AgronomyRow]) -> int:
    return max((r.id for r in rows if r.id is not None), default=0)


class AgronomyStore:
    """Agronomy rows persisted in a single JSON file.

    Rows are keyed by an integer `id`. They are never deleted: they are added,
    merged (`bulk_set`), replaced (`import_rows`) or have their supervisor
    remark patched.
    """

    def __init__(self, store: JsonFileStore):
        self.store = store

    @staticmethod
    def _load(records: List[Dict[str, Any]]) -> List[AgronomyRow]:
        return [AgronomyRow.from_dict(r) for r in records if isinstance(r, dict)]

    def all(self) -> List[AgronomyRow]:
        return self._load(self.store.read())

    def search(self, filters: Optional[AgronomyFilters] = None) -> List[Dict[str, Any]]:
        """Filtered rows in storage order."""
        rows = [r.to_dict() for r in self.all()]
        if filters is None:
            return rows
        return [r for r in rows if filters.matches(r)]

    def add(self, payload: Mapping[str, Any]) -> int:
        if not isinstance(payload, Mapping):
            raise BadRequest("Expected a JSON object")
        row = AgronomyRow.from_dict(payload)

        with self.store.update() as records:
            rows = self._load(records)
            row.id = _highest_id(rows) + 1
            records.append(row.to_dict())

        logger.info(f"Added agronomy row {row.id}")
        return row.id

    def bulk_set(self, payloads: Any) -> int:
        """Merge a batch of rows into the stored set by identifier."""
        if not isinstance(payloads, list) or not all(isinstance(p, Mapping) for p in payloads):
            raise BadRequest("Expected a JSON array of row objects")
        incoming = [AgronomyRow.from_dict(p) for p in payloads]

        with self.store.update() as records:
            rows = self._load(records)
            index = {r.id: i for i, r in enumerate(rows) if r.id is not None}
            next_id = max(_highest_id(rows), _highest_id(incoming)) + 1

            for row in incoming:
                if row.id is None:
                    row.id = next_id
                    next_id += 1
                pos = index.get(row.id)
                if pos is not None:
                    rows[pos] = merge_rows(rows[pos], row)
                else:
                    index[row.id] = len(rows)
                    rows.append(row)

            records[:] = [r.to_dict() for r in rows]

        logger.info(f"Bulk-set {len(incoming)} agronomy row(s)")
        return len(incoming)

    def patch_supervisor_remarks(self, row_id: Any, text: Any) -> None:
        rid = coerce_id(row_id)
        if rid is None or rid == 0:
            raise BadRequest("Missing id")

        with self.store.update() as records:
            for record in records:
                if isinstance(record, dict) and coerce_id(record.get("id")) == rid:
                    record[SUPERVISOR_REMARKS] = "" if text is None else str(text)
                    break
            else:
                raise NotFound("Not found")

        logger.info(f"Updated supervisor remarks on agronomy row {rid}")

    def import_rows(self, raw_rows: Sequence[Mapping[str, str]]) -> ImportResult:
        """Reconcile spreadsheet rows with the stored set.

        Rows carrying an id replace the stored row with that id. Rows without
        one adopt the id of a stored row with the same composite key
        (farm, gh, crop, variety, time) that no other import row claims, or get
        a fresh id. Stored rows the import does not mention are left alone.
        When several import rows land on the same id the last one wins and the
        extra rows are reported as duplicates.
        """
        normalized = [normalize_agronomy_row(dict(r)) for r in raw_rows]
        incoming = [AgronomyRow.from_dict(n) for n in normalized]
        created = replaced = duplicates = 0

        with self.store.update() as records:
            rows = self._load(records)
            stored_count = len(rows)
            index = {r.id: i for i, r in enumerate(rows) if r.id is not None}
            by_key: Dict[tuple, int] = {}
            for i, r in enumerate(rows):
                key = r.composite_key()
                if r.id is not None and key is not None:
                    by_key.setdefault(key, i)
            # Rows named by id are never up for composite-key matching
            claimed = {index[r.id] for r in incoming if r.id in index}
            touched: set[int] = set()
            next_id = max(_highest_id(rows), _highest_id(incoming)) + 1

            for row in incoming:
                if row.id is None:
                    key = row.composite_key()
                    pos = by_key.get(key) if key is not None else None
                    if pos is not None and pos not in claimed:
                        row.id = rows[pos].id
                        claimed.add(pos)
                    else:
                        row.id = next_id
                        next_id += 1

                pos = index.get(row.id)
                if pos is None:
                    pos = len(rows)
                    index[row.id] = pos
                    rows.append(row)
                else:
                    rows[pos] = replace_row(rows[pos], row)

                if pos in touched:
                    duplicates += 1
                    logger.warning(f"Agronomy import lists row {row.id} more than once; the last occurrence wins")
                elif pos < stored_count:
                    replaced += 1
                else:
                    created += 1
                touched.add(pos)

            records[:] = [r.to_dict() for r in rows]

        logger.info(
            f"Imported {len(incoming)} agronomy row(s): {created} new, {replaced} replaced, {duplicates} duplicate(s)"
        )
        return ImportResult(count=len(incoming), created=created, replaced=replaced, duplicates=duplicates)

    def export(self, filters: Optional[AgronomyFilters] = None) -> bytes:
        rows = self.search(filters)
        values = ([r.get(h, "") for h in EXPORT_HEADERS] for r in rows)
        return write_workbook(EXPORT_SHEET_NAME, EXPORT_HEADERS, values)

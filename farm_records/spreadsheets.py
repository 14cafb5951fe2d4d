"""Spreadsheet import/export helpers (CSV, XLSX, XLSM)."""

from __future__ import annotations

import io
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence
from zipfile import BadZipFile

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils.exceptions import InvalidFileException
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .errors import BadRequest
from .models import AGRONOMY_FIELDS, DAY_FIELDS, DAYS

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SUPPORTED_FORMATS = {
    ".csv": "csv",
    ".xlsx": "excel",
    ".xlsm": "excel",
}

_FULL_DAY_NAMES = {
    "mon": "monday",
    "tue": "tuesday",
    "wed": "wednesday",
    "thu": "thursday",
    "fri": "friday",
    "sat": "saturday",
    "sun": "sunday",
}

_DAY_PART_VARIANTS = {
    "Rate": ("rate", "dose"),
    "Vol": ("vol", "volume"),
    "Chemical": ("chemical", "chem", "product"),
    "Area": ("area",),
    "Mode": ("mode",),
}

_EXTRA_ALIASES = {
    "id": ("rowid", "recordid"),
    "farm": ("farmname",),
    "gh": ("greenhouse", "greenhouseno", "ghno", "house"),
    "area": ("totalarea",),
    "variety": ("cultivar", "var"),
    "mode": ("applicationmode",),
    "method": ("applicationmethod",),
    "time": ("applicationtime", "period"),
    "target": ("targetpest", "targetpestdisease"),
    "preparedBy": ("prepared", "preparer"),
    "agronomistRemarks": ("agronomistremark", "agronomistcomments", "agronomistcomment"),
    "supervisorRemarks": ("supervisorremark", "supervisorcomments", "supervisorcomment"),
}


def normalize_header(name: Any) -> str:
    """Lowercase a header and drop whitespace, underscores, dots, dashes and slashes."""
    return re.sub(r"[\s_.\-/]+", "", str(name or "")).lower()


def _build_alias_table() -> Dict[str, str]:
    table: Dict[str, str] = {"id": "id"}
    for name in AGRONOMY_FIELDS:
        table[normalize_header(name)] = name
    for day in DAYS:
        for part in DAY_FIELDS:
            canonical = f"{day}{part}"
            for day_name in (day, _FULL_DAY_NAMES[day]):
                for variant in _DAY_PART_VARIANTS[part]:
                    table.setdefault(f"{day_name}{variant}", canonical)
    for canonical, variants in _EXTRA_ALIASES.items():
        for variant in variants:
            table.setdefault(normalize_header(variant), canonical)
    return table


AGRONOMY_ALIASES = _build_alias_table()


def canonical_field(header: Any) -> Optional[str]:
    return AGRONOMY_ALIASES.get(normalize_header(header))


def detect_format(filename: str) -> str:
    ext = Path(filename or "").suffix.lower()
    fmt = SUPPORTED_FORMATS.get(ext)
    if not fmt:
        allowed = ", ".join(sorted(SUPPORTED_FORMATS))
        raise BadRequest(f"Unsupported file type '{ext or filename}'. Allowed: {allowed}")
    return fmt


def read_rows(path: Path | str, fmt: str) -> List[Dict[str, str]]:
    """Read the first sheet of a spreadsheet as a list of text-valued dicts."""
    try:
        if fmt == "csv":
            df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        else:
            df = pd.read_excel(path, sheet_name=0, engine="openpyxl", dtype=str, keep_default_na=False)
    except (ValueError, UnicodeDecodeError, BadZipFile, InvalidFileException) as e:
        raise BadRequest(f"Could not read spreadsheet: {e}") from e

    df = df.fillna("")
    rows: List[Dict[str, str]] = []
    for record in df.to_dict(orient="records"):
        cleaned = {str(k).strip(): str(v) for k, v in record.items()}
        if any(v.strip() for v in cleaned.values()):
            rows.append(cleaned)
    return rows


def normalize_agronomy_row(raw: Dict[str, str]) -> Dict[str, str]:
    """Map aliased headers to schema fields, dropping unknown columns.

    Cell values are kept as-is; an empty cell under a known column is a
    supplied "". When two columns alias the same field the first non-empty
    one wins.
    """
    out: Dict[str, str] = {}
    for header, value in raw.items():
        name = canonical_field(header)
        if not name:
            continue
        if not out.get(name):
            out[name] = value
    return out


def write_workbook(sheet_name: str, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> bytes:
    """Render a single-sheet XLSX workbook and return its bytes."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment

    for row_idx, values in enumerate(rows, 2):
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            # Text that looks like a formula stays text
            if isinstance(value, str) and value.startswith("="):
                cell.data_type = "s"

    for column in ws.columns:
        max_length = max((len(str(c.value)) for c in column if c.value is not None), default=0)
        ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@contextmanager
def saved_upload(upload: FileStorage, upload_dir: Path | str) -> Iterator[Path]:
    """Write an uploaded file to a temp path and remove it once the block ends."""
    upload_dir = Path(upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(secure_filename(upload.filename or "")).suffix.lower()
    fd, tmp_name = tempfile.mkstemp(prefix="upload_", suffix=suffix, dir=str(upload_dir))
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        upload.save(str(tmp_path))
        yield tmp_path
    finally:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass

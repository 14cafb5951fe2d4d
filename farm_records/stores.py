from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from flask import current_app

from .agronomy import AgronomyStore
from .config import AGRONOMY_FILE, DATA_FILES, FARM_REPORT_FILE, PAYROLL_FILE, USERS_FILE
from .farm_report import FarmReportStore
from .json_store import JsonFileStore
from .users import UserDirectory

EXTENSION_KEY = "farm_records"


@dataclass
class Stores:
    data_dir: Path
    upload_dir: Path
    users: UserDirectory
    agronomy: AgronomyStore
    farm_report: FarmReportStore

    def ensure_files(self) -> None:
        for name in DATA_FILES:
            JsonFileStore(self.data_dir / name).ensure()
        self.upload_dir.mkdir(parents=True, exist_ok=True)


def build_stores(data_dir: Path | str, upload_dir: Path | str | None = None, timezone_name: str = "UTC") -> Stores:
    data_dir = Path(data_dir).resolve()
    upload_dir = Path(upload_dir).resolve() if upload_dir else data_dir / "uploads"
    return Stores(
        data_dir=data_dir,
        upload_dir=upload_dir,
        users=UserDirectory(
            users=JsonFileStore(data_dir / USERS_FILE),
            payroll=JsonFileStore(data_dir / PAYROLL_FILE),
        ),
        agronomy=AgronomyStore(JsonFileStore(data_dir / AGRONOMY_FILE)),
        farm_report=FarmReportStore(JsonFileStore(data_dir / FARM_REPORT_FILE), timezone_name=timezone_name),
    )


def get_stores() -> Stores:
    return current_app.extensions[EXTENSION_KEY]

"""Application configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from pathlib import Path


def _default_data_dir() -> Path:
    # farm_records/config.py -> project root -> data/
    return (Path(__file__).resolve().parents[1] / "data").resolve()


class Config:
    """Settings read once when the app is created.

    Every value can be overridden through the environment (a `.env` file is
    loaded by the entry points) or through the `overrides` mapping handed to
    `create_app()`.
    """

    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key-change-in-production")
    SESSION_COOKIE_SECURE = os.environ.get("FLASK_ENV") == "production"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    DATA_DIR = os.environ.get("FARM_RECORDS_DATA_DIR") or str(_default_data_dir())
    # Empty means "<DATA_DIR>/uploads"
    UPLOAD_DIR = os.environ.get("FARM_RECORDS_UPLOAD_DIR", "")
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_UPLOAD_MB", "10")) * 1024 * 1024

    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE", "UTC")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


USERS_FILE = "users.json"
PAYROLL_FILE = "payroll.json"
AGRONOMY_FILE = "agronomist_data.json"
FARM_REPORT_FILE = "farm_report.json"

DATA_FILES = (USERS_FILE, PAYROLL_FILE, AGRONOMY_FILE, FARM_REPORT_FILE)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

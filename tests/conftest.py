from __future__ import annotations

import json

import pytest

from farm_records import create_app

PAYROLL = [
    {"payrollNumber": "1001", "role": "Viewer"},
    {"payrollNumber": "1002", "role": "Supervisor"},
    {"payrollNumber": "1003", "role": "Agronomist"},
    {"payrollNumber": "1004", "role": "GeneralManager"},
]

ROLE_USERS = {
    "Viewer": ("vera", "1001"),
    "Supervisor": ("sam", "1002"),
    "Agronomist": ("ada", "1003"),
    "GeneralManager": ("gina", "1004"),
}

PASSWORD = "s3cret-pass"


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / "data"
    d.mkdir()
    (d / "payroll.json").write_text(json.dumps(PAYROLL), encoding="utf-8")
    return d


@pytest.fixture
def app(data_dir):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "DATA_DIR": str(data_dir),
            "UPLOAD_DIR": "",
            "REPORT_TIMEZONE": "UTC",
        }
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _logged_in_client(app, role: str):
    username, payroll_number = ROLE_USERS[role]
    c = app.test_client()
    resp = c.post(
        "/register",
        json={"username": username, "password": PASSWORD, "role": role, "payrollNumber": payroll_number},
    )
    assert resp.get_json()["success"] is True
    resp = c.post("/login", json={"username": username, "password": PASSWORD})
    assert resp.get_json()["success"] is True
    return c


@pytest.fixture
def viewer(app):
    return _logged_in_client(app, "Viewer")


@pytest.fixture
def supervisor(app):
    return _logged_in_client(app, "Supervisor")


@pytest.fixture
def agronomist(app):
    return _logged_in_client(app, "Agronomist")


@pytest.fixture
def manager(app):
    return _logged_in_client(app, "GeneralManager")

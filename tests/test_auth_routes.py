import json

import pytest


def _register(client, **overrides):
    payload = {"username": "newbie", "password": "pw", "role": "Viewer", "payrollNumber": "1001"}
    payload.update(overrides)
    return client.post("/register", json=payload).get_json()


def _users(data_dir):
    return json.loads((data_dir / "users.json").read_text(encoding="utf-8"))


def test_startup_creates_data_files(app, data_dir):
    for name in ("users.json", "payroll.json", "agronomist_data.json", "farm_report.json"):
        assert (data_dir / name).exists()
    assert (data_dir / "uploads").is_dir()


def test_register_and_login(client, data_dir):
    assert _register(client) == {"success": True}
    users = _users(data_dir)
    assert len(users) == 1
    assert users[0]["id"] == 1
    assert users[0]["role"] == "Viewer"
    assert users[0]["password"] != "pw"
    assert users[0]["createdAt"].endswith("Z")

    resp = client.post("/login", json={"username": "newbie", "password": "pw"})
    assert resp.get_json() == {"success": True, "role": "Viewer", "username": "newbie"}

    resp = client.get("/check-session")
    assert resp.status_code == 200
    assert resp.get_json() == {"loggedIn": True, "role": "Viewer", "username": "newbie"}


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"password": ""}, "All fields are required"),
        ({"payrollNumber": None}, "All fields are required"),
        ({"role": "Admin"}, "Invalid role"),
        ({"payrollNumber": "9999"}, "Invalid credentials: payroll number does not match the selected role."),
    ],
)
def test_register_validation(client, data_dir, overrides, message):
    assert _register(client, **overrides) == {"success": False, "message": message}
    assert _users(data_dir) == []


@pytest.mark.parametrize("role, payroll", [("Agronomist", "1001"), ("Viewer", "1003"), ("GeneralManager", "1002")])
def test_register_payroll_role_mismatch_creates_nothing(client, data_dir, role, payroll):
    result = _register(client, role=role, payrollNumber=payroll)
    assert result["success"] is False
    assert "payroll number does not match" in result["message"]
    assert _users(data_dir) == []


def test_register_payroll_number_compared_as_string(client):
    assert _register(client, payrollNumber=1001)["success"] is True


def test_register_duplicate_username(client, data_dir):
    assert _register(client)["success"] is True
    assert _register(client) == {"success": False, "message": "Username already exists"}
    assert len(_users(data_dir)) == 1


def test_login_rejects_bad_credentials(client):
    _register(client)
    for payload in ({"username": "newbie", "password": "wrong"}, {"username": "ghost", "password": "pw"}, {}):
        resp = client.post("/login", json=payload)
        assert resp.get_json() == {"success": False, "message": "Invalid credentials"}


def test_login_accepts_legacy_plaintext_password(client, data_dir):
    (data_dir / "users.json").write_text(
        json.dumps([{"id": 1, "username": "old", "password": "plain", "role": "Supervisor", "payrollNumber": "1002"}]),
        encoding="utf-8",
    )
    resp = client.post("/login", json={"username": "old", "password": "plain"})
    assert resp.get_json()["role"] == "Supervisor"


def test_login_with_malformed_body(client):
    resp = client.post("/login", data="{broken", content_type="application/json")
    assert resp.get_json() == {"success": False, "message": "Invalid credentials"}


def test_logout_clears_session(viewer):
    assert viewer.post("/logout").get_json() == {"success": True}
    resp = viewer.get("/check-session")
    assert resp.status_code == 401
    assert resp.get_json() == {"loggedIn": False}


def test_check_session_anonymous(client):
    assert client.get("/check-session").status_code == 401


def test_api_requires_session(client):
    resp = client.get("/agro")
    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Unauthorized"}


def test_api_rejects_disallowed_role(viewer):
    resp = viewer.post("/agro/add", json={"farm": "North"})
    assert resp.status_code == 403
    assert resp.get_json() == {"success": False, "message": "Forbidden"}


@pytest.mark.parametrize("page", ["/", "/login.html", "/register.html"])
def test_public_pages(client, page):
    resp = client.get(page)
    assert resp.status_code == 200
    assert resp.mimetype == "text/html"


@pytest.mark.parametrize("page", ["/viewer.html", "/supervisor.html", "/agronomist.html", "/farmreport.html"])
def test_gated_pages_redirect_anonymous(client, page):
    resp = client.get(page)
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/login.html")


@pytest.mark.parametrize(
    "fixture, allowed",
    [
        ("viewer", {"/viewer.html"}),
        ("supervisor", {"/viewer.html", "/supervisor.html"}),
        ("agronomist", {"/viewer.html", "/supervisor.html", "/agronomist.html", "/farmreport.html"}),
        ("manager", {"/viewer.html", "/supervisor.html", "/agronomist.html", "/farmreport.html"}),
    ],
)
def test_page_role_gates(request, fixture, allowed):
    c = request.getfixturevalue(fixture)
    for page in ("/viewer.html", "/supervisor.html", "/agronomist.html", "/farmreport.html"):
        resp = c.get(page)
        if page in allowed:
            assert resp.status_code == 200, page
        else:
            assert resp.status_code == 403, page
            assert resp.get_data(as_text=True) == "Forbidden"


def test_fixture_password_is_hashed(agronomist, data_dir):
    stored = [u for u in _users(data_dir) if u["username"] == "ada"][0]
    assert stored["password"].startswith(("pbkdf2:", "scrypt:"))


def test_login_refuses_user_with_unknown_role(client, data_dir):
    (data_dir / "users.json").write_text(
        json.dumps([{"id": 1, "username": "x", "password": "p", "role": "Admin", "payrollNumber": "1"}]),
        encoding="utf-8",
    )
    resp = client.post("/login", json={"username": "x", "password": "p"})
    assert resp.status_code == 200
    assert resp.get_json() == {"success": False, "message": "Invalid credentials"}
    assert client.get("/check-session").status_code == 401


def test_auth_route_wrong_method_answers_json(client):
    resp = client.get("/login")
    assert resp.status_code == 405
    assert resp.is_json
    assert resp.get_json()["success"] is False

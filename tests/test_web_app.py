from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.auth_gate import OAuthAuthGate
from settings import AUTH_MODE_OAUTH, AppSettings
from web.server import create_app


def _settings(tmp_path: Path, **overrides: Any) -> AppSettings:
    values: Dict[str, Any] = {
        "spreadsheet_id": str(tmp_path / "koperasi.json"),
        "cookie_secure": False,
        "static_dir": str(tmp_path / "dist"),
    }
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture
def client(tmp_path: Path):
    app = create_app(_settings(tmp_path))
    app.testing = True
    with app.test_client() as test_client:
        assert test_client.post("/api/sheets/seed").status_code == 200
        yield test_client


def _login(client, email: str = "admin@koperasi.com", password: str = "admin123"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_init_creates_worksheets(tmp_path: Path) -> None:
    app = create_app(_settings(tmp_path))

    response = app.test_client().get("/api/sheets/init")

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Sheets initialized"}
    assert (tmp_path / "koperasi.json").exists()


def test_seed_reports_updated_sheets(tmp_path: Path) -> None:
    app = create_app(_settings(tmp_path))

    payload = app.test_client().post("/api/sheets/seed").get_json()

    assert payload["success"] is True
    assert payload["message"] == "Data sampel berhasil diisi!"
    assert payload["debug"]["sheetsUpdated"] == ["Members", "Savings", "Products", "Transactions", "Inventory", "Users"]


def test_data_routes_require_session(client) -> None:
    response = client.get("/api/sheets/data/Members")

    assert response.status_code == 401
    assert response.get_json() == {"error": "Not authenticated"}
    assert client.get("/api/dashboard/summary").status_code == 401


def test_login_sets_session_and_status(client) -> None:
    response = _login(client, "budi@email.com", "budi123")

    assert response.status_code == 200
    assert response.get_json() == {
        "success": True,
        "user": {"email": "budi@email.com", "role": "Anggota", "name": "Budi Santoso"},
    }
    assert "user_session=" in response.headers["Set-Cookie"]
    assert "HttpOnly" in response.headers["Set-Cookie"]

    status = client.get("/api/auth/status").get_json()
    assert status["isAuthenticated"] is True
    assert status["user"]["email"] == "budi@email.com"
    assert status["permissions"] == []


def test_login_with_wrong_password(client) -> None:
    response = _login(client, "budi@email.com", "nope")

    assert response.status_code == 401
    assert response.get_json() == {"error": "Email atau Password salah"}


def test_logout_clears_session(client) -> None:
    _login(client)

    assert client.post("/api/auth/logout").get_json() == {"success": True}
    assert client.get("/api/auth/status").get_json() == {"isAuthenticated": False}


def test_list_hides_user_passwords(client) -> None:
    _login(client)

    users = client.get("/api/sheets/data/Users").get_json()
    members = client.get("/api/sheets/data/Members").get_json()

    assert users[0] == {"Email": "admin@koperasi.com", "Role": "Admin", "Name": "Administrator"}
    assert [member["ID"] for member in members] == ["MBR-1001", "MBR-1002", "MBR-1003"]


def test_create_update_delete_member(client) -> None:
    _login(client)

    created = client.post(
        "/api/sheets/data/Members",
        json={"values": ["", "Dewi Lestari", "dewi@email.com", "0812", "01/03/2024"]},
    ).get_json()
    new_id = created["id"]
    assert created["success"] is True
    assert new_id.startswith("MBR-")

    updated = client.put(
        f"/api/sheets/data/Members/{new_id}",
        json={"fields": {"ID": new_id, "Name": "Dewi L.", "Email": "dewi@email.com", "Phone": "0812", "JoinDate": "01/03/2024"}},
    )
    assert updated.get_json() == {"success": True}
    members = client.get("/api/sheets/data/Members").get_json()
    assert members[-1]["Name"] == "Dewi L."

    assert client.delete(f"/api/sheets/data/Members/{new_id}").get_json() == {"success": True}
    assert len(client.get("/api/sheets/data/Members").get_json()) == 3


def test_savings_append_returns_success_without_id(client) -> None:
    _login(client)

    response = client.post("/api/sheets/data/Savings", json={"values": ["MBR-1003", "Simpanan Wajib", "50000", "01/03/2024"]})

    assert response.get_json() == {"success": True}
    assert client.put("/api/sheets/data/Savings/MBR-1001", json={"values": []}).status_code == 405
    assert client.delete("/api/sheets/data/Savings/MBR-1001").status_code == 405


def test_unknown_identifier_and_collection(client) -> None:
    _login(client)

    missing = client.delete("/api/sheets/data/Members/MBR-0000")
    unknown = client.get("/api/sheets/data/Loans")

    assert missing.status_code == 404
    assert missing.get_json() == {"error": "Data not found: Members/MBR-0000"}
    assert unknown.status_code == 404


def test_malformed_body_is_rejected(client) -> None:
    _login(client)

    assert client.post("/api/sheets/data/Members", json={"name": "x"}).status_code == 400
    assert client.post("/api/sheets/data/Members", json=["x"]).status_code == 400


def test_dashboard_summary(client) -> None:
    _login(client)

    summary = client.get("/api/dashboard/summary").get_json()

    assert summary["memberCount"] == 3
    assert summary["totalSavings"] == 1050000
    assert summary["productCount"] == 4
    assert summary["lowStock"][0]["Name"] == "Sabun Mandi"


def test_role_enforcement_when_enabled(tmp_path: Path) -> None:
    app = create_app(_settings(tmp_path, enforce_roles=True))
    client = app.test_client()
    client.post("/api/sheets/seed")

    _login(client, "staff@koperasi.com", "staff123")
    forbidden = client.post("/api/sheets/data/Members", json={"values": ["", "X", "", "", ""]})
    allowed = client.post("/api/sheets/data/Inventory", json={"values": ["PRD-2004", "5", "01/03/2024"]})

    assert forbidden.status_code == 403
    assert allowed.status_code == 200


def test_oauth_login_flow(tmp_path: Path) -> None:
    class _Flow:
        def authorization_url(self, **kwargs):
            return "https://accounts.google.com/o/oauth2/auth?demo=1", "state"

        def fetch_token(self, code):
            return {"access_token": "ya29.token", "refresh_token": "1//refresh"}

    settings = _settings(tmp_path, auth_mode=AUTH_MODE_OAUTH, google_client_id="id", google_client_secret="secret")
    app = create_app(settings, gate=OAuthAuthGate(settings, flow_factory=_Flow))
    client = app.test_client()

    assert client.get("/api/auth/url").get_json() == {"url": "https://accounts.google.com/o/oauth2/auth?demo=1"}
    assert client.post("/api/auth/login", json={"email": "a", "password": "b"}).status_code == 404
    assert client.get("/api/sheets/data/Members").status_code == 401

    callback = client.get("/auth/callback?code=4/abc")
    assert callback.status_code == 200
    assert b"OAUTH_AUTH_SUCCESS" in callback.data
    assert "google_tokens=" in callback.headers["Set-Cookie"]
    assert client.get("/api/auth/status").get_json() == {"isAuthenticated": True}

    client.post("/api/sheets/seed")
    users = client.get("/api/sheets/data/Users").get_json()
    assert users[0] == {"Email": "admin@koperasi.com", "Role": "Admin", "Name": "Administrator"}


def test_static_bundle_falls_back_to_index(tmp_path: Path) -> None:
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "index.html").write_text("<html>dashboard</html>", encoding="utf-8")
    (dist / "app.js").write_text("console.log('ok')", encoding="utf-8")
    client = create_app(_settings(tmp_path)).test_client()

    assert client.get("/members").data == b"<html>dashboard</html>"
    assert b"console.log" in client.get("/app.js").data
    assert client.get("/api/unknown").status_code == 404


def test_summary_stays_strict_json_with_bad_cells(client) -> None:
    _login(client)
    client.post("/api/sheets/data/Savings", json={"values": ["MBR-1001", "Simpanan Wajib", "NaN", "01/03/2024"]})
    client.post("/api/sheets/data/Products", json={"values": ["PRD-9", "Kopi", "12000", "Minuman", "abc"]})

    response = client.get("/api/dashboard/summary")

    def _reject(constant):
        raise ValueError(f"non-standard JSON constant {constant}")

    summary = json.loads(response.get_data(as_text=True), parse_constant=_reject)
    assert summary["totalSavings"] == 1050000
    assert [row["ID"] for row in summary["lowStock"]] == ["PRD-2004"]


def test_reseeding_populated_users_needs_session(client) -> None:
    anonymous = client.post("/api/sheets/seed")

    assert anonymous.status_code == 401
    _login(client)
    assert client.post("/api/sheets/seed").status_code == 200


def test_reseeding_needs_users_write_access_when_enforced(tmp_path: Path) -> None:
    app = create_app(_settings(tmp_path, enforce_roles=True))
    client = app.test_client()
    assert client.post("/api/sheets/seed").status_code == 200

    _login(client, "staff@koperasi.com", "staff123")
    assert client.post("/api/sheets/seed").status_code == 403
    _login(client)
    assert client.post("/api/sheets/seed").status_code == 200

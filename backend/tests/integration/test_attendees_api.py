"""
Integration tests for Attendees API endpoints.

Tests end-to-end flows for registration and check-in:
- Registering attendees (staff only) and duplicate handling
- Listing with search and filters, stats
- Check-in, undo, toggle and QR scan from the anonymous desk
- QR code rendering
- CSV import, export and template
"""

import pytest


@pytest.fixture
def registration_client(test_client, login):
    login("registration")
    return test_client


def _register(client, name="Ann Lee", email="ann@x.io", company=None):
    response = client.post(
        "/api/attendees", json={"name": name, "email": email, "company": company}
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestRegistration:
    """Tests for POST /api/attendees."""

    def test_anonymous_cannot_register(self, test_client):
        response = test_client.post("/api/attendees", json={"name": "Ann Lee"})
        assert response.status_code == 401

    def test_event_area_cannot_register(self, test_client, login):
        login("event")
        response = test_client.post("/api/attendees", json={"name": "Ann Lee"})
        assert response.status_code == 403

    def test_register(self, registration_client):
        data = _register(registration_client, company="Acme")

        assert data["guid"].startswith("att_")
        assert data["name"] == "Ann Lee"
        assert data["company"] == "Acme"
        assert data["checked_in"] is False
        assert data["check_in_time"] is None
        assert data["created_at"].endswith("Z")

    def test_duplicate_returns_conflict_with_existing(self, registration_client):
        _register(registration_client)

        response = registration_client.post(
            "/api/attendees", json={"name": "ann lee", "email": None}
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["message"] == "Attendee already exists: Ann Lee, ann@x.io"
        assert detail["existing"]["email"] == "ann@x.io"

    def test_blank_name_rejected(self, registration_client):
        response = registration_client.post("/api/attendees", json={"name": "   "})
        assert response.status_code == 422


class TestListing:
    """Tests for GET /api/attendees and /stats."""

    def test_list_search_and_filter(self, registration_client):
        ann = _register(registration_client, company="Acme")
        _register(registration_client, name="Bob Roe", email="bob@x.io")
        registration_client.post(f"/api/attendees/{ann['guid']}/check-in")

        everyone = registration_client.get("/api/attendees").json()
        searched = registration_client.get("/api/attendees", params={"search": "acme"}).json()
        checked = registration_client.get("/api/attendees", params={"filter": "checked-in"}).json()

        assert everyone["total"] == 2
        assert [a["name"] for a in searched["items"]] == ["Ann Lee"]
        assert [a["name"] for a in checked["items"]] == ["Ann Lee"]

    def test_invalid_filter(self, test_client):
        response = test_client.get("/api/attendees", params={"filter": "maybe"})
        assert response.status_code == 400

    def test_stats(self, registration_client):
        ann = _register(registration_client)
        _register(registration_client, name="Bob Roe", email="bob@x.io")
        registration_client.post(f"/api/attendees/{ann['guid']}/check-in")

        response = registration_client.get("/api/attendees/stats")

        assert response.json() == {"total": 2, "checked_in": 1, "not_checked_in": 1}

    def test_get_unknown(self, test_client):
        response = test_client.get("/api/attendees/att_" + "0" * 26)
        assert response.status_code == 404


class TestCheckIn:
    """Tests for check-in endpoints, open to the anonymous desk."""

    def test_check_in_and_undo(self, test_client, sample_attendee):
        guid = sample_attendee().guid

        checked = test_client.post(f"/api/attendees/{guid}/check-in")
        undone = test_client.post(f"/api/attendees/{guid}/undo-check-in")

        assert checked.status_code == 200
        assert checked.json()["checked_in"] is True
        assert checked.json()["check_in_time"] is not None
        assert undone.json()["checked_in"] is False
        assert undone.json()["check_in_time"] is None

    def test_toggle(self, test_client, sample_attendee):
        guid = sample_attendee().guid

        assert test_client.post(f"/api/attendees/{guid}/toggle-check-in").json()["checked_in"] is True
        assert test_client.post(f"/api/attendees/{guid}/toggle-check-in").json()["checked_in"] is False

    def test_scan(self, test_client, sample_attendee):
        guid = sample_attendee(email="ann@x.io").guid

        response = test_client.post("/api/attendees/scan", json={"payload": " ANN@x.io "})

        assert response.status_code == 200
        assert response.json()["guid"] == guid
        assert response.json()["checked_in"] is True

    def test_scan_unknown(self, test_client):
        response = test_client.post("/api/attendees/scan", json={"payload": "nobody@x.io"})
        assert response.status_code == 404

    def test_check_in_unknown(self, test_client):
        response = test_client.post("/api/attendees/att_" + "0" * 26 + "/check-in")
        assert response.status_code == 404

    def test_qr_code(self, test_client, sample_attendee):
        guid = sample_attendee().guid

        response = test_client.get(f"/api/attendees/{guid}/qr")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")


class TestDelete:
    """Tests for DELETE /api/attendees/{guid}."""

    def test_delete(self, registration_client):
        guid = _register(registration_client)["guid"]

        assert registration_client.delete(f"/api/attendees/{guid}").status_code == 204
        assert registration_client.get(f"/api/attendees/{guid}").status_code == 404

    def test_anonymous_cannot_delete(self, test_client, sample_attendee):
        guid = sample_attendee().guid
        assert test_client.delete(f"/api/attendees/{guid}").status_code == 401


class TestCsv:
    """Tests for CSV import, export and template (admin only)."""

    def test_registration_cannot_import(self, registration_client):
        response = registration_client.post(
            "/api/attendees/import",
            files={"file": ("a.csv", b"Name,Email\nAnn Lee,ann@x.io\n", "text/csv")},
        )
        assert response.status_code == 403

    def test_import(self, test_client, login):
        login("admin")
        content = b"Name,Email,Company\nAnn Lee,ann@x.io,Acme\nAnn Lee,ann@x.io,Acme\nBob Roe,bob@x.io,\n"

        response = test_client.post(
            "/api/attendees/import", files={"file": ("people.csv", content, "text/csv")}
        )

        assert response.status_code == 200
        assert response.json() == {
            "imported": 2,
            "skipped": 1,
            "skipped_names": ["Ann Lee"],
            "errors": [],
        }

    def test_import_missing_columns(self, test_client, login):
        login("admin")

        response = test_client.post(
            "/api/attendees/import", files={"file": ("people.csv", b"Name\nAnn\n", "text/csv")}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == 'CSV must contain "name", "email" columns'

    def test_export(self, test_client, login, sample_attendee):
        login("admin")
        sample_attendee(name="Ann Lee", email="ann@x.io")

        response = test_client.get("/api/attendees/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'attachment; filename="attendees_' in response.headers["content-disposition"]
        assert response.text.splitlines()[1] == '"Ann Lee","ann@x.io","","Not Checked In",""'

    def test_template(self, test_client, login):
        login("admin")
        response = test_client.get("/api/attendees/template")
        assert response.text.startswith("Name,Email,Company")

from __future__ import annotations

from app.config import settings


def test_public_profile_hides_email(client):
    response = client.get("/api/awardees/by-slug/ada-obi")

    assert response.status_code == 200
    awardee = response.json()["awardee"]
    assert awardee["name"] == "Ada Obi"
    assert "email" not in awardee


def test_hidden_profile_reads_as_not_found(client):
    response = client.get("/api/awardees/by-slug/hidden")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Awardee not found"}


def test_edit_view_masks_email(client):
    response = client.get("/api/awardees/awd-ada")

    assert response.status_code == 200
    assert response.json()["awardee"]["masked_email"] == "Ad*****@Example.com"


def test_verify_email_success(client):
    response = client.post(
        "/api/awardees/verify-email",
        json={"awardeeId": "awd-ada", "email": "  ada.obi@example.com "},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["verified"] is True
    assert body["name"] == "Ada Obi"


def test_verify_email_mismatch_unknown_and_missing_anchor_are_indistinguishable(client):
    responses = [
        client.post("/api/awardees/verify-email", json={"awardeeId": awardee_id, "email": "x@y.com"})
        for awardee_id in ("awd-ada", "awd-unknown", "awd-no-email")
    ]

    assert {r.status_code for r in responses} == {403}
    assert len({r.json()["message"] for r in responses}) == 1


def test_verify_email_requires_both_fields(client):
    response = client.post("/api/awardees/verify-email", json={"awardeeId": "awd-ada"})

    assert response.status_code == 400


def test_verify_email_is_rate_limited(client, monkeypatch):
    from app.api.routes import awardees as awardee_routes

    monkeypatch.setattr(awardee_routes._rate_limiter, "max_requests", 2)
    payload = {"awardeeId": "awd-ada", "email": "wrong@example.com"}

    codes = [client.post("/api/awardees/verify-email", json=payload).status_code for _ in range(3)]

    assert codes == [403, 403, 429]


def test_self_service_can_be_disabled(client, monkeypatch):
    monkeypatch.setattr(settings, "self_service_enabled", False)

    verify = client.post(
        "/api/awardees/verify-email", json={"awardeeId": "awd-ada", "email": "ada.obi@example.com"}
    )
    update = client.put("/api/awardees/self-update", json={"id": "awd-ada", "headline": "CEO"})
    flag = client.get("/api/settings/self-service-enabled")

    assert verify.status_code == 403
    assert update.status_code == 403
    assert flag.json() == {"enabled": False}


def test_self_update_whitelists_fields(client, awardee_repo):
    response = client.put(
        "/api/awardees/self-update",
        json={
            "id": "awd-ada",
            "headline": "CEO, Kora Labs",
            "email": "attacker@example.com",
            "is_public": False,
            "social_links": {"twitter": "@adaobi", "github": "  ", "myspace": "ada"},
        },
    )

    assert response.status_code == 200
    stored = awardee_repo.get("awd-ada")
    assert stored.headline == "CEO, Kora Labs"
    assert stored.email == "Ada.Obi@Example.com"
    assert stored.is_public is True
    assert stored.social_links == {"twitter": "@adaobi"}


def test_self_update_unknown_awardee(client):
    response = client.put("/api/awardees/self-update", json={"id": "awd-missing", "bio": "x"})

    assert response.status_code == 404


def test_self_update_requires_id(client):
    assert client.put("/api/awardees/self-update", json={"bio": "x"}).status_code == 400


def test_upload_image_returns_public_url(client, avatar_storage):
    response = client.post(
        "/api/awardees/upload-image",
        files={"image": ("me.png", b"\x89PNG", "image/png")},
        data={"awardee_id": "awd-ada"},
    )

    assert response.status_code == 200
    url = response.json()["imageUrl"]
    assert url.startswith("memory://avatars/awd-ada-")
    assert len(avatar_storage.objects) == 1


def test_upload_image_rejects_unsupported_type(client, avatar_storage):
    response = client.post(
        "/api/awardees/upload-image",
        files={"image": ("me.svg", b"<svg/>", "image/svg+xml")},
        data={"awardee_id": "awd-ada"},
    )

    assert response.status_code == 400
    assert avatar_storage.objects == {}


def test_upload_image_rejects_oversized_file(client, monkeypatch):
    monkeypatch.setattr(settings, "avatar_max_bytes", 4)

    response = client.post(
        "/api/awardees/upload-image",
        files={"image": ("me.png", b"12345", "image/png")},
        data={"awardee_id": "awd-ada"},
    )

    assert response.status_code == 400


def test_upload_image_stops_reading_past_the_limit(client, monkeypatch, avatar_storage):
    monkeypatch.setattr(settings, "avatar_max_bytes", 1024)

    response = client.post(
        "/api/awardees/upload-image",
        files={"image": ("me.png", b"x" * 64 * 1024, "image/png")},
        data={"awardee_id": "awd-ada"},
    )

    assert response.status_code == 400
    assert response.json()["message"].startswith("File too large")
    assert avatar_storage.objects == {}


def test_upload_image_for_unknown_awardee(client):
    response = client.post(
        "/api/awardees/upload-image",
        files={"image": ("me.png", b"png", "image/png")},
        data={"awardee_id": "awd-missing"},
    )

    assert response.status_code == 404

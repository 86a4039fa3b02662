"""Tests for the admin moderation router."""

import pytest

from app.models.sent_message import SentMessage


def _send(client, sender, receiver, text):
    r = client.post(
        "/messages",
        json={"receiver_ids": [receiver], "text": text},
        headers={"X-User-Id": sender},
    )
    assert r.status_code == 201
    return r.json()["messages"][0]["id"]


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "Basic test-admin-key"}],
)
def test_admin_requires_bearer_token(client, headers):
    r = client.get("/admin/matches", headers=headers)
    assert r.status_code == 401


def test_admin_hide_unhide(client, admin_headers, users):
    a, b, _ = users
    message_id = _send(client, a, b, "rude words")

    r = client.post("/admin/messages/hide", json={"messageIds": [message_id]}, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["affected"] == 1
    assert data["aggregate_updates"][0]["deleted"] is True

    r = client.post("/admin/messages/hide", json={"messageId": message_id}, headers=admin_headers)
    assert r.json()["affected"] == 0

    r = client.get(
        "/admin/messages/unmatched",
        params={"message": "rude", "include_hidden": True},
        headers=admin_headers,
    )
    assert r.json()["count"] == 1
    assert r.json()["items"][0]["is_hidden"] is True

    r = client.post("/admin/messages/unhide", json={"messageId": message_id}, headers=admin_headers)
    assert r.json()["affected"] == 1
    assert client.get("/presets").json()["total"] == 1


def test_admin_delete_unmatched_and_conflict(client, admin_headers, users):
    a, b, _ = users
    loose = _send(client, a, b, "loose")
    matched = _send(client, a, b, "paired")
    _send(client, b, a, "paired")

    r = client.request("DELETE", "/admin/messages", json={"messageIds": [loose, matched]}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["affected"] == 1
    assert r.json()["skipped_matched"] == [matched]

    r = client.request("DELETE", "/admin/messages", json={"messageId": matched}, headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["reason"] == "all_matched"


def test_admin_search_matches(client, admin_headers, users):
    a, b, c = users
    _send(client, a, b, "sunrise")
    _send(client, b, a, "sunrise")

    r = client.get("/admin/matches", params={"message": "sun"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["count"] == 1

    r = client.get("/admin/matches", params={"user_id": c}, headers=admin_headers)
    assert r.json()["count"] == 0


def test_admin_hide_by_keywords(client, db, admin_headers, users, monkeypatch):
    a, b, _ = users
    _send(client, a, b, "free lottery tickets")
    _send(client, a, b, "see you")
    monkeypatch.setenv("HIDDEN_KEYWORDS", "lottery")

    r = client.post("/admin/messages/hide-by-keywords", json={"dryRun": True}, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert (data["dry_run"], data["matched"], data["hidden"]) == (True, 1, 0)
    assert data["keywords"] == ["lottery"]

    r = client.post("/admin/messages/hide-by-keywords", headers=admin_headers)
    assert r.json()["hidden"] == 1
    assert db.query(SentMessage).filter(SentMessage.is_hidden.is_(True)).count() == 1


def test_admin_hide_by_keywords_without_configuration(client, admin_headers, monkeypatch):
    monkeypatch.setenv("HIDDEN_KEYWORDS", "")
    r = client.post("/admin/messages/hide-by-keywords", headers=admin_headers)
    assert r.status_code == 400


def test_admin_delete_match(client, admin_headers, users):
    a, b, _ = users
    _send(client, a, b, "forever")
    _send(client, b, a, "forever")

    r = client.request(
        "DELETE",
        "/admin/matches",
        json={"text": "forever", "userIds": [a, b]},
        headers=admin_headers,
    )
    assert r.status_code == 200
    data = r.json()
    assert len(data["deleted_match_pairs"]) == 1
    assert data["deleted_sent_messages"] == 2
    assert client.get("/presets").json()["total"] == 0

    r = client.request("DELETE", "/admin/matches", json={"text": "forever"}, headers=admin_headers)
    assert r.status_code == 400


def test_admin_hide_match(client, db, admin_headers, users):
    a, b, _ = users
    _send(client, a, b, "twilight")
    _send(client, b, a, "twilight")
    pair_id = client.get("/admin/matches", params={"message": "twilight"}, headers=admin_headers).json()["items"][0]["id"]

    r = client.post("/admin/matches/hide", json={"matchPairId": pair_id}, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["hidden_sent_messages"] == 2
    assert [p["id"] for p in data["match_pairs"]] == [pair_id]
    assert data["aggregate_updates"][0]["deleted"] is True
    assert db.query(SentMessage).filter(SentMessage.is_hidden.is_(True)).count() == 2
    assert client.get("/admin/matches", params={"message": "twilight"}, headers=admin_headers).json()["count"] == 1

    r = client.post("/admin/matches/hide", json={"message": "twilight", "userIds": [a]}, headers=admin_headers)
    assert r.status_code == 400


def test_admin_hide_with_unknown_id_is_not_found(client, admin_headers, users):
    a, b, _ = users
    message_id = _send(client, a, b, "partial")

    r = client.post(
        "/admin/messages/hide",
        json={"messageIds": [message_id, "00000000-0000-4000-8000-000000000000"]},
        headers=admin_headers,
    )
    assert r.status_code == 404
    assert client.get("/presets").json()["total"] == 1

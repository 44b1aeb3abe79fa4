"""
Tests for the /api/chat REST routes and their error envelopes.
"""

import pytest

from clubchat.core.realtime import thread_room


class TestHealth:
    """Unauthenticated service endpoints."""

    def test_root(self, client):
        assert client.get("/").status_code == 200

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "healthy"}


class TestAuthentication:
    """Bearer tokens and roles."""

    def test_missing_token(self, client):
        response = client.get("/api/chat/threads")
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Authentication token required"}

    def test_invalid_token(self, client):
        response = client.get("/api/chat/threads", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/chat/threads"),
        ("get", "/api/chat/threads/thread-x/messages"),
        ("post", "/api/chat/threads/thread-x/messages"),
        ("patch", "/api/chat/messages/msg-x/reaction"),
    ])
    def test_admin_is_not_a_chat_participant(self, client, seed, auth_headers, method, path):
        kwargs = {"headers": auth_headers(seed.admin)}
        if method != "get":
            kwargs["json"] = {"text": "hi", "emoji": "love"}
        response = getattr(client, method)(path, **kwargs)
        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_club_account_cannot_open_direct_thread(self, client, seed, auth_headers):
        response = client.post(
            "/api/chat/threads/direct",
            json={"golferUserId": seed.alice},
            headers=auth_headers(seed.club_account),
        )
        assert response.status_code == 403
        assert response.json()["success"] is False


class TestThreadRoutes:
    """Direct and group thread endpoints."""

    def test_direct_thread_is_reused(self, client, seed, auth_headers):
        first = client.post(
            "/api/chat/threads/direct", json={"golferUserId": seed.bob}, headers=auth_headers(seed.alice),
        )
        second = client.post(
            "/api/chat/threads/direct", json={"golferUserId": seed.alice}, headers=auth_headers(seed.bob),
        )

        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["data"]["type"] == "direct"
        assert body["data"]["memberUserIds"] == [seed.alice, seed.bob]
        assert body["data"]["directPeer"]["id"] == seed.bob
        assert second.json()["data"]["id"] == body["data"]["id"]

    def test_direct_thread_needs_follow(self, client, seed, auth_headers):
        response = client.post(
            "/api/chat/threads/direct", json={"golferUserId": seed.carol}, headers=auth_headers(seed.bob),
        )
        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "message": "Chat allowed only when at least one golfer follows the other.",
        }

    def test_create_group(self, client, seed, auth_headers):
        response = client.post(
            "/api/chat/threads/group",
            json={"name": "Sunday Fourball", "memberUserIds": seed.bob},
            headers=auth_headers(seed.alice),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Sunday Fourball"
        assert data["clubId"] == seed.club
        assert data["memberUserIds"] == [seed.alice, seed.bob]

    def test_group_name_length(self, client, seed, auth_headers):
        response = client.post(
            "/api/chat/threads/group",
            json={"name": "X", "memberUserIds": [seed.bob]},
            headers=auth_headers(seed.alice),
        )
        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_list_threads(self, client, seed, auth_headers):
        client.post("/api/chat/threads/direct", json={"golferUserId": seed.bob}, headers=auth_headers(seed.alice))
        client.post(
            "/api/chat/threads/group",
            json={"name": "Sunday Fourball", "memberUserIds": [seed.bob]},
            headers=auth_headers(seed.alice),
        )

        everything = client.get("/api/chat/threads", headers=auth_headers(seed.bob)).json()["data"]
        groups = client.get("/api/chat/threads?type=group", headers=auth_headers(seed.bob)).json()["data"]

        assert {t["type"] for t in everything} == {"direct", "group"}
        assert [t["type"] for t in groups] == ["group"]

    def test_list_threads_invalid_type(self, client, seed, auth_headers):
        response = client.get("/api/chat/threads?type=broadcast", headers=auth_headers(seed.alice))
        assert response.status_code == 400

    def test_club_threads(self, client, seed, auth_headers):
        created = client.post(
            "/api/chat/threads/group", json={"name": "All members"}, headers=auth_headers(seed.club_account),
        ).json()["data"]

        staff = client.get(f"/api/chat/threads/club/{seed.club}", headers=auth_headers(seed.club_account))
        outsider = client.get(f"/api/chat/threads/club/{seed.club}", headers=auth_headers(seed.dave))

        assert [t["id"] for t in staff.json()["data"]] == [created["id"]]
        assert outsider.status_code == 403

    def test_group_members(self, client, seed, auth_headers):
        group = client.post(
            "/api/chat/threads/group",
            json={"name": "Managers", "memberUserIds": [seed.bob]},
            headers=auth_headers(seed.club_account),
        ).json()["data"]

        added = client.post(
            f"/api/chat/threads/{group['id']}/members",
            json={"memberUserIds": [seed.carol]},
            headers=auth_headers(seed.club_account),
        )
        assert added.json()["data"]["memberUserIds"] == [seed.club_account, seed.bob, seed.carol]

        removed = client.delete(
            f"/api/chat/threads/{group['id']}/members/{seed.bob}", headers=auth_headers(seed.club_account),
        )
        assert removed.json()["data"]["memberUserIds"] == [seed.club_account, seed.carol]

        owner = client.delete(
            f"/api/chat/threads/{group['id']}/members/{seed.club_account}", headers=auth_headers(seed.club_account),
        )
        assert owner.status_code == 400
        assert owner.json()["message"] == "Owner cannot be removed."


class TestMessageRoutes:
    """Sending, listing and reacting over REST."""

    @pytest.fixture
    def thread_id(self, client, seed, auth_headers):
        response = client.post(
            "/api/chat/threads/direct", json={"golferUserId": seed.bob}, headers=auth_headers(seed.alice),
        )
        return response.json()["data"]["id"]

    def test_send_and_list(self, client, seed, auth_headers, socket_server, thread_id):
        sent = client.post(
            f"/api/chat/threads/{thread_id}/messages",
            json={"type": "text", "text": "hello 👋"},
            headers=auth_headers(seed.alice),
        )

        assert sent.status_code == 200
        message = sent.json()["data"]["message"]
        assert message["text"] == "hello 👋"
        assert message["senderUserId"] == seed.alice
        assert sent.json()["data"]["thread"]["lastMessage"]["id"] == message["id"]

        [broadcast] = socket_server.events("new-msg")
        assert broadcast["room"] == thread_room(thread_id)
        assert broadcast["data"]["id"] == message["id"]

        listed = client.get(f"/api/chat/threads/{thread_id}/messages", headers=auth_headers(seed.bob))
        assert [m["id"] for m in listed.json()["data"]] == [message["id"]]

    def test_send_image_requires_url(self, client, seed, auth_headers, thread_id):
        response = client.post(
            f"/api/chat/threads/{thread_id}/messages",
            json={"type": "image"},
            headers=auth_headers(seed.alice),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Image message requires imageUrl."

    def test_non_member_cannot_read(self, client, seed, auth_headers, thread_id):
        response = client.get(f"/api/chat/threads/{thread_id}/messages", headers=auth_headers(seed.dave))
        assert response.status_code == 403

    def test_reaction_toggle(self, client, seed, auth_headers, thread_id):
        message = client.post(
            f"/api/chat/threads/{thread_id}/messages",
            json={"text": "nice round"},
            headers=auth_headers(seed.alice),
        ).json()["data"]["message"]

        url = f"/api/chat/messages/{message['id']}/reaction"
        first = client.patch(url, json={"emoji": "love"}, headers=auth_headers(seed.bob)).json()
        second = client.patch(url, json={"emoji": "love"}, headers=auth_headers(seed.bob)).json()

        assert first["data"]["action"] == "set"
        assert first["data"]["message"]["reactions"][0]["userId"] == seed.bob
        assert second["data"]["action"] == "removed"
        assert second["message"] == "Reaction removed."

    def test_reaction_requires_emoji(self, client, seed, auth_headers, thread_id):
        message = client.post(
            f"/api/chat/threads/{thread_id}/messages",
            json={"text": "nice round"},
            headers=auth_headers(seed.alice),
        ).json()["data"]["message"]

        response = client.patch(
            f"/api/chat/messages/{message['id']}/reaction", json={}, headers=auth_headers(seed.bob),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Emoji is required."

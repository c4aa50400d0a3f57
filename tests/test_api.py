"""
HTTP tests through FastAPI's TestClient.

Each test gets a fresh app on its own SQLite file and a FakeAssistant.
"""

import pytest
from fastapi.testclient import TestClient

from shopsmart.api.streaming import stream_reply
from shopsmart.errors import RecordNotFound
from shopsmart.runtime import create_app

from conftest import FakeAssistant

PASSWORD = "secret123"


def signup(client, email="a@b.com", password=PASSWORD):
    return client.post("/signup", json={"email": email, "password": password})


def login(client, email="a@b.com", password=PASSWORD):
    return client.post("/login", json={"email": email, "password": password})


def logged_in(client, email="a@b.com"):
    assert signup(client, email).status_code == 201
    assert login(client, email).status_code == 200
    return client.get(f"/user/email/{email}").json()["id"]


def new_chat(client, content="Apple"):
    r = client.post("/chat", json={"messages": [{"role": "user", "content": content}]})
    assert r.status_code == 201
    return client.get("/chat").json()[0]["id"]


class TestHealth:

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert r.text == "OK"


class TestAuth:

    def test_signup_and_login(self, client):
        r = signup(client)
        assert r.status_code == 201
        assert r.json() == {"resultCode": "USER_CREATED"}

        r = login(client)
        assert r.status_code == 200
        assert r.json() == {"resultCode": "USER_LOGGED_IN"}

    def test_signup_twice(self, client):
        signup(client)
        r = signup(client)
        assert r.status_code == 400
        assert r.json()["resultCode"] == "USER_ALREADY_EXISTS"

    @pytest.mark.parametrize(
        "body",
        [
            {"email": "not-an-email", "password": PASSWORD},
            {"email": "a@b.com", "password": "short"},
            {"email": "a@b.com"},
        ],
    )
    def test_invalid_submission(self, client, body):
        r = client.post("/signup", json=body)
        assert r.status_code == 400
        assert r.json()["resultCode"] == "INVALID_SUBMISSION"
        assert r.json()["type"] == "error"

    def test_bad_password(self, client):
        signup(client)
        r = login(client, password="wrong-password")
        assert r.status_code == 401
        assert r.json()["resultCode"] == "INVALID_CREDENTIALS"

    def test_unknown_email(self, client):
        r = login(client, email="nobody@b.com")
        assert r.status_code == 401
        assert r.json()["resultCode"] == "INVALID_CREDENTIALS"

    def test_logout_ends_session(self, client):
        logged_in(client)
        assert client.get("/profile").status_code == 200

        r = client.delete("/logout")
        assert r.status_code == 200
        assert r.text == "OK"
        assert client.get("/profile").status_code == 401

    def test_logout_without_session(self, client):
        assert client.delete("/logout").status_code == 200


class TestUsers:

    def test_lookup_hides_password(self, client):
        user_id = logged_in(client)
        for path in ("/user", f"/user/{user_id}", "/user/email/a@b.com"):
            body = client.get(path).json()
            users = body if isinstance(body, list) else [body]
            assert users
            assert all("password" not in u for u in users)

    def test_unknown_user(self, client):
        r = client.get("/user/nope")
        assert r.status_code == 400
        assert r.json()["resultCode"] == "INVALID_CREDENTIALS"

    def test_unknown_email(self, client):
        assert client.get("/user/email/nobody@b.com").status_code == 400

    def test_create_user(self, client):
        r = client.post("/user", json={"email": "c@d.com", "password": PASSWORD})
        assert r.status_code == 201
        assert client.get("/user/email/c@d.com").json()["email"] == "c@d.com"

    def test_select_profile_and_preferences(self, client):
        user_id = logged_in(client)
        profile = client.post("/profile", json={"profileName": "Home"}).json()
        client.put(
            f"/profile/{profile['id']}/preferences",
            json={"lifestyle": "vegan", "allergen": "nuts"},
        )

        r = client.put(f"/user/{user_id}/profile", json={"profileId": profile["id"]})
        assert r.json() == {"resultCode": "USER_UPDATED"}
        assert client.get(f"/user/{user_id}/profile").json()["name"] == "Home"
        assert client.get(f"/user/{user_id}/preferences").json() == {
            "lifestyle": "vegan",
            "allergen": "nuts",
            "other": "",
        }

    def test_preferences_template_without_profile(self, client):
        user_id = logged_in(client)
        assert client.get(f"/user/{user_id}/preferences").json() == {
            "lifestyle": "",
            "allergen": "",
            "other": "",
        }
        assert client.get(f"/user/{user_id}/profile").json() is None

    def test_sub_resources_need_same_user(self, client):
        other = logged_in(client, "other@b.com")
        client.delete("/logout")
        logged_in(client, "a@b.com")

        for r in (
            client.get(f"/user/{other}/profile"),
            client.get(f"/user/{other}/preferences"),
            client.delete(f"/user/{other}"),
        ):
            assert r.status_code == 400
            assert r.json()["resultCode"] == "INVALID_CREDENTIALS"
        assert client.get(f"/user/{other}").status_code == 200

    def test_sub_resources_need_session(self, client):
        user_id = logged_in(client)
        client.delete("/logout")
        assert client.get(f"/user/{user_id}/preferences").status_code == 401

    def test_delete_cascades(self, client):
        user_id = logged_in(client)
        client.post("/profile", json={"profileName": "Home"})
        new_chat(client)

        r = client.delete(f"/user/{user_id}")
        assert r.status_code == 200
        assert client.get(f"/user/{user_id}").status_code == 400

        # the account is gone; signing up again starts from nothing
        logged_in(client)
        assert client.get("/profile").json() == []
        assert client.get("/chat").json() == []


class TestProfiles:

    def test_requires_session(self, client):
        r = client.get("/profile")
        assert r.status_code == 401
        assert r.json()["resultCode"] == "INVALID_CREDENTIALS"

    def test_crud(self, client):
        user_id = logged_in(client)
        r = client.post("/profile", json={"profileName": "Home"})
        assert r.status_code == 201
        profile = r.json()
        assert profile["name"] == "Home"
        assert profile["userId"] == user_id

        assert [p["id"] for p in client.get("/profile").json()] == [profile["id"]]
        assert client.get(f"/profile/{profile['id']}").json()["name"] == "Home"

        r = client.put(
            f"/profile/{profile['id']}/preferences",
            json={"lifestyle": "keto", "allergen": "dairy", "other": "organic"},
        )
        assert r.json() == {"resultCode": "PROFILE_UPDATED"}
        assert client.get(f"/profile/{profile['id']}/preferences").json()["other"] == "organic"

        r = client.delete(f"/profile/{profile['id']}")
        assert r.text == "OK"
        assert client.get("/profile").json() == []

    def test_empty_name_rejected(self, client):
        logged_in(client)
        r = client.post("/profile", json={"profileName": "  "})
        assert r.status_code == 400
        assert r.json()["resultCode"] == "INVALID_SUBMISSION"


class TestChats:

    def test_create_and_list(self, client):
        logged_in(client)
        new_chat(client, "Apple")
        new_chat(client, "Banana")
        assert [c["title"] for c in client.get("/chat").json()] == ["Banana", "Apple"]

    def test_empty_messages_rejected(self, client):
        logged_in(client)
        r = client.post("/chat", json={"messages": []})
        assert r.status_code == 400
        assert r.json()["resultCode"] == "INVALID_SUBMISSION"

    def test_get_and_delete(self, client):
        logged_in(client)
        chat_id = new_chat(client)
        chat = client.get(f"/chat/{chat_id}").json()
        assert chat["messages"] == [{"role": "user", "content": "Apple"}]

        assert client.delete(f"/chat/{chat_id}").text == "OK"
        assert client.get("/chat").json() == []

    def test_delete_all(self, client):
        logged_in(client)
        new_chat(client, "Apple")
        new_chat(client, "Banana")
        r = client.delete("/chat")
        assert r.json() == {"resultCode": "CHAT_UPDATED"}
        assert client.get("/chat").json() == []

    def test_not_found_and_not_yours_look_the_same(self, client):
        logged_in(client, "owner@b.com")
        chat_id = new_chat(client)
        client.delete("/logout")
        logged_in(client, "intruder@b.com")

        foreign = client.get(f"/chat/{chat_id}")
        missing = client.get("/chat/does-not-exist")
        assert foreign.status_code == missing.status_code == 400
        assert foreign.json() == missing.json()
        assert foreign.json()["resultCode"] == "INVALID_CREDENTIALS"

        assert client.delete(f"/chat/{chat_id}").status_code == 400
        assert client.put(f"/chat/{chat_id}/share").status_code == 400

    def test_share(self, client):
        logged_in(client)
        chat_id = new_chat(client)
        assert client.get(f"/chat/{chat_id}/share").status_code == 400

        r = client.put(f"/chat/{chat_id}/share")
        assert r.json() == f"/share/{chat_id}"

        client.delete("/logout")
        shared = client.get(f"/chat/{chat_id}/share")
        assert shared.status_code == 200
        assert shared.json()["sharePath"] == f"/share/{chat_id}"

    def test_send_message_streams_and_persists(self, client, assistant):
        logged_in(client)
        chat_id = new_chat(client)

        r = client.post(f"/chat/{chat_id}", json={"content": "apples"})
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/plain")
        assert r.text == "Granny Smith apples"

        messages = client.get(f"/chat/{chat_id}").json()["messages"]
        assert messages[-2:] == [
            {"role": "user", "content": "apples"},
            {"role": "assistant", "content": "Granny Smith apples"},
        ]
        assert assistant.calls[0][0] == "apples"

    def test_send_message_to_foreign_chat(self, client):
        logged_in(client, "owner@b.com")
        chat_id = new_chat(client)
        client.delete("/logout")
        logged_in(client, "intruder@b.com")

        r = client.post(f"/chat/{chat_id}", json={"content": "apples"})
        assert r.status_code == 400
        assert r.json()["resultCode"] == "INVALID_CREDENTIALS"

    def test_rate_limit(self, client):
        logged_in(client)
        chat_id = new_chat(client)
        for _ in range(3):
            assert client.post(f"/chat/{chat_id}", json={"content": "x"}).status_code == 200

        r = client.post(f"/chat/{chat_id}", json={"content": "x"})
        assert r.status_code == 429
        assert r.json()["resultCode"] == "RATE_LIMIT_EXCEEDED"


class TestAssistantFailures:

    def _client(self, settings, assistant):
        return TestClient(create_app(settings, assistant=assistant))

    def test_provider_down_before_first_chunk(self, settings):
        with self._client(settings, FakeAssistant(fail_after=0)) as client:
            logged_in(client)
            chat_id = new_chat(client)
            r = client.post(f"/chat/{chat_id}", json={"content": "x"})
            assert r.status_code == 502
            assert len(client.get(f"/chat/{chat_id}").json()["messages"]) == 1

    def test_provider_fails_mid_stream(self, settings):
        with self._client(settings, FakeAssistant(["a", "b", "c"], fail_after=2)) as client:
            logged_in(client)
            chat_id = new_chat(client)
            r = client.post(f"/chat/{chat_id}", json={"content": "x"})
            assert r.status_code == 200
            assert r.text == "ab"
            # nothing persisted for an interrupted reply
            assert len(client.get(f"/chat/{chat_id}").json()["messages"]) == 1


class TestSample:

    def test_sample_streams_without_session(self, client, assistant):
        r = client.post("/message/sample", json={"content": "bread", "preferences": "gluten free"})
        assert r.status_code == 200
        assert r.text == "Granny Smith apples"
        content, prefs = assistant.calls[0]
        assert content == "bread"
        assert prefs.other == "gluten free"

    def test_sample_validation(self, client):
        r = client.post("/message/sample", json={"content": ""})
        assert r.status_code == 400

    def test_sample_is_rate_limited(self, client):
        body = {"content": "bread", "preferences": "any"}
        for _ in range(3):
            assert client.post("/message/sample", json=body).status_code == 200
        assert client.post("/message/sample", json=body).status_code == 429


class TestStreamReply:

    @pytest.mark.asyncio
    async def test_failed_store_after_stream_keeps_body(self):
        async def chunks():
            yield "Granny"
            yield " Smith"

        async def chat_gone(text):
            raise RecordNotFound("chats:gone")

        response = await stream_reply(chunks(), chat_gone)
        assert [c async for c in response.body_iterator] == ["Granny", " Smith"]

    def test_chat_deleted_while_streaming(self, settings):
        holder = {}

        class DeletingAssistant(FakeAssistant):
            async def stream(self, content, preferences):
                async for chunk in super().stream(content, preferences):
                    yield chunk
                # the chat disappears before the reply is stored
                await holder["services"].chats.delete(holder["user_id"], holder["chat_id"])

        app = create_app(settings, assistant=DeletingAssistant())
        with TestClient(app) as client:
            holder["user_id"] = logged_in(client)
            holder["chat_id"] = new_chat(client)
            holder["services"] = app.state.services

            r = client.post(f"/chat/{holder['chat_id']}", json={"content": "apples"})
            assert r.status_code == 200
            assert r.text == "Granny Smith apples"
            assert client.get("/chat").json() == []

# frontend/test_remote_adapters.py
# Remote-mode adapters with the HTTP boundary mocked (requests.request)

import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from domains.projects.models.actor import Actor, Session
from frontend.local_storage import LocalStorage
from frontend.records import RemoteRecordStore
from frontend.session import REMOTE_SESSION_KEY, RemoteSessionAdapter

API = "https://proj.supabase.co/functions/v1/server"
IDENTITY = "https://proj.supabase.co"

PROJECT = {
    "id": "proj_1700000000000",
    "name": "X",
    "status": "Planning",
    "priority": "Low",
    "assignee": {"name": "Ann", "avatar": "https://example.com/a.png", "initials": "A"},
    "dueDate": "2099-01-01",
    "progress": 0,
    "createdAt": "2024-01-01T00:00:00.000Z",
    "updatedAt": "2024-01-01T00:00:00.000Z",
    "userId": "u1",
}


def _response(status_code=200, body=None, text=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = body
    resp.text = text if text is not None else ("" if body is None else str(body))
    return resp


@pytest.fixture
def session():
    return Session(
        access_token="user-token",
        expires_at=int(time.time()) + 3600,
        actor=Actor(id="u1", email="ann@example.com", name="Ann"),
    )


@pytest.fixture
def storage():
    return LocalStorage(None)


@pytest.fixture
def sessions(storage):
    return RemoteSessionAdapter(IDENTITY, API, "anon-key", storage)


@pytest.fixture
def records():
    return RemoteRecordStore(API)


class TestRemoteRecords:
    def test_list_sends_bearer_token(self, records, session):
        with patch("frontend.api_client.requests.request") as mock_request:
            mock_request.return_value = _response(200, {"projects": [PROJECT]})
            result = records.list(session)

        assert result.success
        assert [p.name for p in result.data] == ["X"]
        args, kwargs = mock_request.call_args
        assert args == ("GET", f"{API}/projects")
        assert kwargs["headers"]["Authorization"] == "Bearer user-token"

    def test_create_posts_fields(self, records, session):
        with patch("frontend.api_client.requests.request") as mock_request:
            mock_request.return_value = _response(200, {"project": PROJECT})
            result = records.create(session, {"name": "X", "status": "Planning", "priority": "Low", "dueDate": "2099-01-01"})

        assert result.success
        assert result.data.id == PROJECT["id"]
        sent = mock_request.call_args.kwargs["json"]
        assert sent == {"name": "X", "status": "Planning", "priority": "Low", "dueDate": "2099-01-01"}

    def test_update_sends_only_given_fields(self, records, session):
        with patch("frontend.api_client.requests.request") as mock_request:
            mock_request.return_value = _response(200, {"project": {**PROJECT, "progress": 50}})
            result = records.update(session, PROJECT["id"], {"progress": 50})

        assert result.data.progress == 50
        assert mock_request.call_args.args == ("PUT", f"{API}/projects/{PROJECT['id']}")
        assert mock_request.call_args.kwargs["json"] == {"progress": 50}

    def test_delete(self, records, session):
        with patch("frontend.api_client.requests.request", return_value=_response(200, {"success": True})):
            assert records.delete(session, PROJECT["id"]).success

    def test_non_2xx_carries_body_text(self, records, session):
        body_text = '{"error":"Project not found"}'
        with patch("frontend.api_client.requests.request", return_value=_response(404, text=body_text)):
            result = records.update(session, "proj_x", {"progress": 1})
        assert not result.success
        assert result.error == body_text

    def test_non_2xx_with_empty_body_uses_default(self, records, session):
        with patch("frontend.api_client.requests.request", return_value=_response(500, text="")):
            assert records.delete(session, "proj_x").error == "Failed to delete project"

    @pytest.mark.parametrize(
        "call,message",
        [
            (lambda r, s: r.create(s, {"name": "X", "dueDate": "2099-01-01"}), "Network error while creating project"),
            (lambda r, s: r.update(s, "p", {"progress": 1}), "Network error while updating project"),
            (lambda r, s: r.delete(s, "p"), "Network error while deleting project"),
        ],
    )
    def test_transport_errors_become_network_failures(self, records, session, call, message):
        with patch("frontend.api_client.requests.request", side_effect=requests.ConnectionError("down")):
            result = call(records, session)
        assert not result.success
        assert result.error == message

    def test_no_session_makes_no_request(self, records):
        with patch("frontend.api_client.requests.request") as mock_request:
            assert records.list(None).error == "User not authenticated"
        mock_request.assert_not_called()

    def test_preferences_roundtrip(self, records, session):
        with patch("frontend.api_client.requests.request") as mock_request:
            mock_request.return_value = _response(200, {"preferences": {"theme": "dark"}})
            assert records.get_preferences(session).data == {"theme": "dark"}
            records.save_preferences(session, {"theme": "light"})
        assert mock_request.call_args.args == ("POST", f"{API}/user/preferences")
        assert mock_request.call_args.kwargs["json"] == {"theme": "light"}


class TestRemoteSessions:
    def test_sign_in_uses_password_grant_and_persists(self, sessions, storage):
        token_body = {
            "access_token": "jwt",
            "refresh_token": "r",
            "expires_in": 3600,
            "expires_at": int(time.time()) + 3600,
            "user": {"id": "u1", "email": "ann@example.com", "user_metadata": {"name": "Ann"}},
        }
        with patch("frontend.api_client.requests.request", return_value=_response(200, token_body)) as mock_request:
            result = sessions.sign_in("ann@example.com", "secret1")

        assert result.ok
        assert result.session.actor.name == "Ann"
        args, kwargs = mock_request.call_args
        assert args == ("POST", f"{IDENTITY}/auth/v1/token")
        assert kwargs["params"] == {"grant_type": "password"}
        assert kwargs["headers"]["apikey"] == "anon-key"
        assert storage.get_item(REMOTE_SESSION_KEY)["accessToken"] == "jwt"
        assert sessions.restore().access_token == "jwt"

    def test_sign_in_error_message_from_identity_service(self, sessions):
        body = {"error": "invalid_grant", "error_description": "Invalid login credentials"}
        with patch("frontend.api_client.requests.request", return_value=_response(400, body)):
            assert sessions.sign_in("ann@example.com", "bad").error == "Invalid login credentials"

    def test_sign_in_transport_error(self, sessions):
        with patch("frontend.api_client.requests.request", side_effect=requests.Timeout()):
            assert sessions.sign_in("ann@example.com", "x").error == "An unexpected error occurred during sign in"

    def test_sign_up_validates_before_calling(self, sessions):
        with patch("frontend.api_client.requests.request") as mock_request:
            assert sessions.sign_up("ann@example.com", "SHORT1", "Ann").error == (
                "Password must contain at least one lowercase letter"
            )
        mock_request.assert_not_called()

    def test_sign_up_posts_to_api_with_anon_key(self, sessions):
        with patch("frontend.api_client.requests.request", return_value=_response(200, {"user": {}})) as mock_request:
            assert sessions.sign_up("ann@example.com", "short1", "Ann").ok
        args, kwargs = mock_request.call_args
        assert args == ("POST", f"{API}/signup")
        assert kwargs["headers"]["Authorization"] == "Bearer anon-key"
        assert kwargs["json"] == {"email": "ann@example.com", "password": "short1", "name": "Ann"}

    def test_sign_up_failure_carries_body(self, sessions):
        with patch("frontend.api_client.requests.request", return_value=_response(400, text='{"error":"taken"}')):
            assert sessions.sign_up("ann@example.com", "short1", "Ann").error == '{"error":"taken"}'

    def test_update_profile_puts_user_metadata(self, sessions, session):
        user = {"id": "u1", "email": "ann@example.com", "user_metadata": {"name": "Annie"}}
        with patch("frontend.api_client.requests.request", return_value=_response(200, user)) as mock_request:
            result = sessions.update_profile(session, {"name": "Annie"})
        assert result.session.actor.name == "Annie"
        assert result.session.access_token == "user-token"
        assert mock_request.call_args.args == ("PUT", f"{IDENTITY}/auth/v1/user")
        assert mock_request.call_args.kwargs["json"] == {"data": {"name": "Annie"}}

    def test_sign_out_never_raises(self, sessions, session, storage):
        storage.set_item(REMOTE_SESSION_KEY, session.model_dump(by_alias=True))
        with patch("frontend.api_client.requests.request", side_effect=requests.ConnectionError()):
            sessions.sign_out(session)
        assert sessions.restore() is None

    def test_expired_session_is_not_restored(self, sessions, session, storage):
        expired = session.model_copy(update={"expires_at": int(time.time()) - 1})
        storage.set_item(REMOTE_SESSION_KEY, expired.model_dump(by_alias=True))
        assert sessions.restore() is None

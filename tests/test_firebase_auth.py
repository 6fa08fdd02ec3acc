"""Tests for the Firebase Authentication adapter."""

import asyncio
import stat
import time
from unittest.mock import MagicMock

import pytest
import requests

from pivotyear.adapters.firebase_auth import (
    IDENTITY_API_BASE,
    SECURE_TOKEN_URL,
    FirebaseAuthAdapter,
    error_from_response,
)
from pivotyear.config import Config, StoredSession
from pivotyear.errors import AuthError, AuthErrorKind


def response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    resp.text = str(payload)
    return resp


def sign_in_payload(local_id="uid-1", email=None):
    payload = {"localId": local_id, "idToken": "id-token", "refreshToken": "refresh-token", "expiresIn": "3600"}
    if email:
        payload["email"] = email
    return payload


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def session_path(tmp_path):
    return tmp_path / "config" / ".session.json"


@pytest.fixture
def adapter(http, session_path):
    return FirebaseAuthAdapter(Config(firebase_api_key="api-key"), session_path=session_path, http=http)


class TestErrorMapping:
    @pytest.mark.parametrize(
        "message,kind",
        [
            ("INVALID_EMAIL", AuthErrorKind.INVALID_EMAIL),
            ("EMAIL_NOT_FOUND", AuthErrorKind.USER_NOT_FOUND),
            ("INVALID_PASSWORD", AuthErrorKind.WRONG_PASSWORD),
            ("INVALID_LOGIN_CREDENTIALS", AuthErrorKind.WRONG_PASSWORD),
            ("EMAIL_EXISTS", AuthErrorKind.EMAIL_IN_USE),
            ("WEAK_PASSWORD : Password should be at least 6 characters", AuthErrorKind.WEAK_PASSWORD),
            ("TOO_MANY_ATTEMPTS_TRY_LATER", AuthErrorKind.UNKNOWN),
        ],
    )
    def test_maps_error_codes(self, message, kind):
        error = error_from_response(response(400, {"error": {"message": message}}))
        assert error.kind is kind

    def test_unparseable_body(self):
        resp = response(500)
        resp.json.side_effect = ValueError("no json")
        assert error_from_response(resp).kind is AuthErrorKind.UNKNOWN

    def test_user_messages(self):
        assert AuthError(AuthErrorKind.EMAIL_IN_USE).user_message == "Email already in use."
        assert AuthError(AuthErrorKind.UNKNOWN).user_message == "Authentication failed."


class TestSignIn:
    def test_anonymous(self, adapter, http, session_path):
        http.post.return_value = response(200, sign_in_payload("anon-uid"))

        user = asyncio.run(adapter.sign_in_anonymously())

        assert user.user_id == "anon-uid"
        assert user.is_anonymous is True
        url = http.post.call_args.args[0]
        kwargs = http.post.call_args.kwargs
        assert url == f"{IDENTITY_API_BASE}/accounts:signUp"
        assert kwargs["params"] == {"key": "api-key"}
        assert kwargs["json"] == {"returnSecureToken": True}
        assert StoredSession.load(session_path).user_id == "anon-uid"

    def test_password(self, adapter, http):
        http.post.return_value = response(200, sign_in_payload("uid-1", "me@example.com"))

        user = asyncio.run(adapter.sign_in_with_password("me@example.com", "secret"))

        assert user.email == "me@example.com"
        assert user.is_anonymous is False
        assert http.post.call_args.args[0].endswith("accounts:signInWithPassword")
        assert http.post.call_args.kwargs["json"]["password"] == "secret"

    def test_create_account(self, adapter, http):
        http.post.return_value = response(200, sign_in_payload("uid-2", "new@example.com"))

        user = asyncio.run(adapter.create_account("new@example.com", "secret"))

        assert user.user_id == "uid-2"
        assert http.post.call_args.args[0].endswith("accounts:signUp")

    def test_failure_raises_typed_error(self, adapter, http, session_path):
        http.post.return_value = response(400, {"error": {"message": "EMAIL_EXISTS"}})

        with pytest.raises(AuthError) as exc:
            asyncio.run(adapter.create_account("taken@example.com", "secret"))

        assert exc.value.kind is AuthErrorKind.EMAIL_IN_USE
        assert adapter.current_user() is None
        assert not session_path.exists()

    def test_network_failure(self, adapter, http):
        http.post.side_effect = requests.ConnectionError("offline")

        with pytest.raises(AuthError) as exc:
            asyncio.run(adapter.sign_in_anonymously())
        assert exc.value.kind is AuthErrorKind.UNKNOWN

    def test_missing_api_key(self, http, session_path):
        adapter = FirebaseAuthAdapter(Config(), session_path=session_path, http=http)

        with pytest.raises(AuthError):
            asyncio.run(adapter.sign_in_anonymously())
        http.post.assert_not_called()

    def test_session_file_is_private(self, adapter, http, session_path):
        http.post.return_value = response(200, sign_in_payload())
        asyncio.run(adapter.sign_in_anonymously())
        assert stat.S_IMODE(session_path.stat().st_mode) == 0o600


class TestAuthState:
    def test_listeners_see_sign_in_and_out(self, adapter, http):
        http.post.return_value = response(200, sign_in_payload("uid-1"))
        seen = []
        adapter.on_auth_state_change(seen.append)

        async def scenario():
            await adapter.sign_in_anonymously()
            await adapter.sign_out()

        asyncio.run(scenario())
        assert [u.user_id if u else None for u in seen] == ["uid-1", None]

    def test_async_listener_is_awaited(self, adapter):
        seen = []

        async def listener(user):
            await asyncio.sleep(0)
            seen.append(user)

        adapter.on_auth_state_change(listener)
        asyncio.run(adapter.restore())
        assert seen == [None]

    def test_unsubscribe(self, adapter):
        seen = []
        unsubscribe = adapter.on_auth_state_change(seen.append)
        unsubscribe()
        asyncio.run(adapter.restore())
        assert seen == []

    def test_restore_reads_session_file(self, adapter, session_path):
        StoredSession(
            user_id="uid-9",
            id_token="t",
            refresh_token="r",
            expires_at=int(time.time()) + 3600,
            email="me@example.com",
        ).save(session_path)

        user = asyncio.run(adapter.restore())

        assert user.user_id == "uid-9"
        assert user.email == "me@example.com"

    def test_sign_out_removes_session_file(self, adapter, http, session_path):
        http.post.return_value = response(200, sign_in_payload())

        async def scenario():
            await adapter.sign_in_anonymously()
            await adapter.sign_out()

        asyncio.run(scenario())
        assert not session_path.exists()
        assert adapter.current_user() is None


class TestIdToken:
    def test_returns_cached_token(self, adapter, http, session_path):
        StoredSession(user_id="u", id_token="fresh", refresh_token="r", expires_at=int(time.time()) + 3600).save(
            session_path
        )
        asyncio.run(adapter.restore())

        token, expiry = adapter.id_token()

        assert token == "fresh"
        assert expiry.tzinfo is not None
        http.post.assert_not_called()

    def test_refreshes_expiring_token(self, adapter, http, session_path):
        StoredSession(user_id="u", id_token="stale", refresh_token="r", expires_at=int(time.time()) + 10).save(
            session_path
        )
        asyncio.run(adapter.restore())
        http.post.return_value = response(
            200, {"id_token": "new", "refresh_token": "r2", "expires_in": "3600"}
        )

        token, _ = adapter.id_token()

        assert token == "new"
        assert http.post.call_args.args[0] == SECURE_TOKEN_URL
        assert http.post.call_args.kwargs["data"] == {"grant_type": "refresh_token", "refresh_token": "r"}
        assert StoredSession.load(session_path).refresh_token == "r2"

    def test_signed_out(self, adapter):
        with pytest.raises(AuthError):
            adapter.id_token()

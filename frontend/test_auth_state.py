# frontend/test_auth_state.py
# Session state helpers and adapter selection, exercised with a plain dict
# standing in for st.session_state

import time

from domains.projects.models.actor import Actor, Session
from frontend.auth import clear_session, get_current_actor, get_session, init_auth_state, is_authenticated, set_session
from frontend.local_storage import LocalStorage
from frontend.records import DemoRecordStore, RemoteRecordStore
from frontend.services import build_adapters
from frontend.session import DemoSessionAdapter, RemoteSessionAdapter


def make_session(expires_in=3600):
    return Session(
        access_token="t",
        expires_at=int(time.time()) + expires_in,
        actor=Actor(id="u1", email="ann@example.com", name="Ann"),
    )


class FakeSessions:
    def __init__(self, restored=None):
        self.restored = restored
        self.calls = 0

    def restore(self):
        self.calls += 1
        return self.restored


def test_init_is_idempotent_and_restores_once():
    ss = {}
    sessions = FakeSessions(restored=make_session())
    init_auth_state(sessions, ss=ss)
    init_auth_state(sessions, ss=ss)
    assert sessions.calls == 1
    assert is_authenticated(ss)
    assert get_current_actor(ss).email == "ann@example.com"


def test_expired_session_is_dropped():
    ss = {"session": make_session(expires_in=-10), "session_restored": True}
    init_auth_state(FakeSessions(), ss=ss)
    assert get_session(ss) is None
    assert not is_authenticated(ss)


def test_set_and_clear():
    ss = {}
    init_auth_state(None, ss=ss)
    assert not is_authenticated(ss)
    set_session(make_session(), ss=ss)
    assert is_authenticated(ss)
    clear_session(ss=ss)
    assert get_session(ss) is None
    assert get_current_actor(ss) is None


def test_build_adapters_demo():
    adapters = build_adapters(demo_mode=True, storage=LocalStorage(None))
    assert adapters.demo_mode
    assert isinstance(adapters.sessions, DemoSessionAdapter)
    assert isinstance(adapters.records, DemoRecordStore)


def test_build_adapters_remote(monkeypatch):
    monkeypatch.setenv("BACKEND_URL", "http://127.0.0.1:8000")
    adapters = build_adapters(demo_mode=False, storage=LocalStorage(None))
    assert not adapters.demo_mode
    assert isinstance(adapters.sessions, RemoteSessionAdapter)
    assert isinstance(adapters.records, RemoteRecordStore)
    assert adapters.records.api_base_url == "http://127.0.0.1:8000"


def test_demo_mode_detection():
    from frontend.config import is_demo_mode

    assert is_demo_mode("")
    assert is_demo_mode("https://demo.supabase.co/")
    assert not is_demo_mode("https://abc.supabase.co")

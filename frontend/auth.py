"""
frontend/auth.py
Centralized authentication state for the dashboard's Streamlit session.

Streamlit reruns the whole script on every interaction, so the signed-in
Session has to live in st.session_state and be initialized at the top of
every run. This module is the single place that reads and writes it:

- init_auth_state(): MUST be called at the top of main(); restores a
  persisted session on the first run
- set_session(): store the Session after sign-in or a profile update
- clear_session(): wipe it on sign-out or expiry
- get_session(): the Session to pass to every record operation

Every helper accepts an optional `ss` mapping so it can be exercised with
a plain dict outside a Streamlit run.
"""

from typing import Any, MutableMapping, Optional

import streamlit as st

from domains.projects.models.actor import Actor, Session


def _state(ss: Optional[MutableMapping[str, Any]]) -> MutableMapping[str, Any]:
    return st.session_state if ss is None else ss


def init_auth_state(sessions=None, ss: Optional[MutableMapping[str, Any]] = None) -> None:
    """
    Initialize auth keys. Idempotent.

    On the first run of a browser session the adapter's restore() is asked
    for a persisted session (remote token or demo marker).
    """
    ss = _state(ss)
    ss.setdefault("session", None)
    ss.setdefault("session_restored", False)

    if not ss["session_restored"] and sessions is not None:
        ss["session_restored"] = True
        if ss["session"] is None:
            ss["session"] = sessions.restore()

    session = ss["session"]
    if session is not None and session.is_expired:
        ss["session"] = None


def set_session(session: Session, ss: Optional[MutableMapping[str, Any]] = None) -> None:
    _state(ss)["session"] = session


def clear_session(ss: Optional[MutableMapping[str, Any]] = None) -> None:
    _state(ss)["session"] = None


def get_session(ss: Optional[MutableMapping[str, Any]] = None) -> Optional[Session]:
    return _state(ss).get("session")


def get_current_actor(ss: Optional[MutableMapping[str, Any]] = None) -> Optional[Actor]:
    session = get_session(ss)
    return session.actor if session else None


def is_authenticated(ss: Optional[MutableMapping[str, Any]] = None) -> bool:
    session = get_session(ss)
    return session is not None and not session.is_expired

"""
frontend/services.py

Chooses the demo or remote adapter pair once, from configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

try:
    from frontend import config
    from frontend.local_storage import LocalStorage
    from frontend.records import DemoRecordStore, RecordStore, RemoteRecordStore
    from frontend.session import DemoSessionAdapter, RemoteSessionAdapter, SessionAdapter
except ModuleNotFoundError:
    import config
    from local_storage import LocalStorage
    from records import DemoRecordStore, RecordStore, RemoteRecordStore
    from session import DemoSessionAdapter, RemoteSessionAdapter, SessionAdapter

logger = logging.getLogger(__name__)


@dataclass
class Adapters:
    sessions: SessionAdapter
    records: RecordStore
    demo_mode: bool


def build_adapters(
    demo_mode: Optional[bool] = None,
    storage: Optional[LocalStorage] = None,
) -> Adapters:
    """
    Build the session and record adapters for this process.

    demo_mode defaults to config.is_demo_mode(); storage defaults to the
    container at config.LOCAL_STORAGE_PATH.
    """
    demo = config.is_demo_mode() if demo_mode is None else demo_mode
    store = storage if storage is not None else LocalStorage(config.LOCAL_STORAGE_PATH)

    if demo:
        logger.info("[CONFIG] Demo mode: data stays in %s", store.path or "memory")
        return Adapters(
            sessions=DemoSessionAdapter(store),
            records=DemoRecordStore(store),
            demo_mode=True,
        )

    api_base_url = config.get_api_base_url()
    return Adapters(
        sessions=RemoteSessionAdapter(
            identity_url=config.get_identity_url(),
            api_base_url=api_base_url,
            anon_key=config.SUPABASE_ANON_KEY,
            storage=store,
        ),
        records=RemoteRecordStore(api_base_url),
        demo_mode=False,
    )

"""Local session store.

The only thing persisted is the MFI API login, one row per session key, in
``$DATA_DIR/session.db`` (``~/.mfi-index`` by default). The schema is
created the first time the store is opened.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from .sqlmodels import Base, StoredSession

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.expanduser("~/.mfi-index")
STORE_FILENAME = "session.db"

_engine: Optional[AsyncEngine] = None


def get_store_path() -> Path:
    """Path of the SQLite session store, creating its directory if needed."""
    data_dir = Path(os.environ.get("DATA_DIR", DEFAULT_DATA_DIR))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / STORE_FILENAME


async def open_store() -> AsyncEngine:
    """Open the store (once) and make sure the session table exists."""
    global _engine
    if _engine is None:
        path = get_store_path()
        _engine = create_async_engine(f"sqlite+aiosqlite:///{path}")
        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Session store opened at %s", path)
    return _engine


async def close_store() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


async def _sessionmaker() -> async_sessionmaker:
    return async_sessionmaker(await open_store(), expire_on_commit=False)


async def load_login(key: str) -> Optional[tuple[str, Optional[dict]]]:
    """The stored ``(token, user)`` for a session key, or None."""
    factory = await _sessionmaker()
    async with factory() as db:
        result = await db.execute(select(StoredSession).where(StoredSession.key == key))
        row = result.scalar_one_or_none()
    if row is None:
        return None
    return row.token, json.loads(row.user_json) if row.user_json else None


async def save_login(key: str, token: str, user: Optional[dict] = None) -> None:
    """Insert or replace the stored login for a session key."""
    user_json = json.dumps(user) if user else ""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    factory = await _sessionmaker()
    async with factory() as db:
        result = await db.execute(select(StoredSession).where(StoredSession.key == key))
        row = result.scalar_one_or_none()
        if row:
            row.token = token
            row.user_json = user_json
            row.updated_at = now
        else:
            db.add(StoredSession(key=key, token=token, user_json=user_json, updated_at=now))
        await db.commit()


async def delete_login(key: str) -> None:
    factory = await _sessionmaker()
    async with factory() as db:
        await db.execute(delete(StoredSession).where(StoredSession.key == key))
        await db.commit()

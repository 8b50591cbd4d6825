import asyncio
import base64
import json
from datetime import datetime, timedelta, timezone

import pytest

from mfi_index import db
from mfi_index.session import AppSession, decode_jwt_payload, is_token_expired


def _jwt(exp: datetime) -> str:
    def segment(obj) -> str:
        return base64.urlsafe_b64encode(json.dumps(obj).encode()).decode().rstrip("=")

    return ".".join([segment({"alg": "none"}), segment({"sub": "42", "exp": int(exp.timestamp())}), "sig"])


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("MFI_API_TOKEN", raising=False)
    asyncio.run(db.close_store())
    yield tmp_path


def _run(coro_fn):
    async def wrapper():
        await db.open_store()
        try:
            return await coro_fn()
        finally:
            await db.close_store()

    return asyncio.run(wrapper())


def test_decode_jwt_payload():
    token = _jwt(datetime(2030, 1, 1, tzinfo=timezone.utc))
    assert decode_jwt_payload(token)["sub"] == "42"
    assert decode_jwt_payload("opaque-token") is None
    assert decode_jwt_payload("a.!!!.c") is None


def test_is_token_expired():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert is_token_expired(_jwt(now - timedelta(minutes=1)), now=now)
    assert not is_token_expired(_jwt(now + timedelta(hours=1)), now=now)
    assert not is_token_expired("opaque-token", now=now)


def test_login_persists_and_hydrate_restores(data_dir):
    token = _jwt(datetime.now(timezone.utc) + timedelta(hours=1))

    async def scenario():
        first = AppSession()
        await first.login(token, {"email": "admin@mfi.test"})
        assert first.authorization_headers() == {"Authorization": f"Bearer {token}"}

        second = AppSession()
        restored = await second.hydrate()
        return restored, second.token, second.user

    restored, restored_token, user = _run(scenario)
    assert restored
    assert restored_token == token
    assert user == {"email": "admin@mfi.test"}


def test_logout_clears_store(data_dir):
    async def scenario():
        session = AppSession()
        await session.login("opaque-token")
        await session.logout()
        assert session.authorization_headers() == {}
        return await AppSession().hydrate()

    assert _run(scenario) is False


def test_hydrate_discards_expired_token(data_dir):
    expired = _jwt(datetime.now(timezone.utc) - timedelta(hours=1))

    async def scenario():
        # a token that expired while it sat in the store
        await db.save_login("default", expired)

        fresh = AppSession()
        restored = await fresh.hydrate()
        return restored, fresh.token, await db.load_login("default")

    restored, token, stored = _run(scenario)
    assert restored is False
    assert token is None
    assert stored is None


def test_hydrate_falls_back_to_environment(data_dir, monkeypatch):
    monkeypatch.setenv("MFI_API_TOKEN", "env-token")

    async def scenario():
        session = AppSession()
        await session.hydrate()
        return session.token

    assert _run(scenario) == "env-token"


def test_login_rejects_expired_token(data_dir):
    expired = _jwt(datetime.now(timezone.utc) - timedelta(hours=1))

    async def scenario():
        with pytest.raises(ValueError):
            await AppSession().login(expired)
        with pytest.raises(ValueError):
            await AppSession().login("")

    _run(scenario)


def test_store_replaces_existing_login(data_dir):
    async def scenario():
        await db.save_login("default", "first", {"email": "a@mfi.test"})
        await db.save_login("default", "second")
        return await db.load_login("default"), db.get_store_path()

    stored, path = _run(scenario)
    assert stored == ("second", None)
    assert path == data_dir / "session.db"
    assert path.exists()

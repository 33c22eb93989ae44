from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.storage import MemoryStorage
from tombola.auth.models import AuthState, AuthUser, MagicLinkSession
from tombola.auth.store import AUTH_REFRESH_TOKEN_KEY, AUTH_TOKEN_KEY, AUTH_USER_KEY, AuthStore
from tombola.session.credentials import CLIENT_ID_KEY, GAME_ID_KEY

ALICE = AuthUser(email="alice@example.com", sub="user-1", exp=2_000_000_000)


def _stored(user: AuthUser = ALICE, token: str = "at", refresh_token: str | None = "rt") -> MemoryStorage:
    items = {AUTH_TOKEN_KEY: token, AUTH_USER_KEY: user.model_dump_json(exclude_none=True)}
    if refresh_token:
        items[AUTH_REFRESH_TOKEN_KEY] = refresh_token
    return MemoryStorage(items)


class TestAuthStoreState:
    def test_starts_loading(self):
        store = AuthStore(MemoryStorage())

        assert store.state == AuthState.LOADING
        assert store.is_authenticated is False
        assert store.bearer_token() is None
        assert store.email() is None

    def test_set_authenticated_persists(self):
        storage = MemoryStorage()
        store = AuthStore(storage)

        store.set_authenticated(ALICE, "at", "rt")

        assert store.is_authenticated is True
        assert store.bearer_token() == "at"
        assert store.email() == "alice@example.com"
        assert storage.get_item(AUTH_TOKEN_KEY) == "at"
        assert storage.get_item(AUTH_REFRESH_TOKEN_KEY) == "rt"
        assert AuthUser.model_validate_json(storage.get_item(AUTH_USER_KEY)) == ALICE

    def test_set_authenticated_without_refresh_token_drops_old_one(self):
        storage = _stored()
        store = AuthStore(storage)

        store.set_authenticated(ALICE, "at-2")

        assert storage.get_item(AUTH_REFRESH_TOKEN_KEY) is None

    def test_sign_out_forgets_only_auth_keys(self):
        storage = _stored()
        storage.set_item(CLIENT_ID_KEY, "c-1")
        storage.set_item(GAME_ID_KEY, "game-1")
        store = AuthStore(storage)
        store.initialize(now=0)

        store.sign_out()

        assert store.state == AuthState.UNAUTHENTICATED
        assert store.user is None
        assert store.bearer_token() is None
        assert sorted(storage.keys()) == sorted([CLIENT_ID_KEY, GAME_ID_KEY])

    def test_disabled_forgets_login(self):
        storage = _stored()
        store = AuthStore(storage)

        store.set_disabled()

        assert store.state == AuthState.DISABLED
        assert storage.get_item(AUTH_TOKEN_KEY) is None

    def test_magic_link_states(self):
        store = AuthStore(MemoryStorage())

        store.set_magic_link_sent()
        assert store.state == AuthState.MAGIC_LINK_SENT

        store.set_magic_link_processing()
        assert store.state == AuthState.MAGIC_LINK_PROCESSING

        store.set_loading()
        assert store.state == AuthState.LOADING


class TestInitialize:
    def test_restores_valid_login(self):
        store = AuthStore(_stored())

        store.initialize(now=1_000_000_000)

        assert store.is_authenticated is True
        assert store.user == ALICE
        assert store.token == "at"
        assert store.refresh_token == "rt"

    def test_nothing_stored(self):
        store = AuthStore(MemoryStorage())

        store.initialize()

        assert store.state == AuthState.UNAUTHENTICATED

    def test_expired_token_is_dropped(self):
        storage = _stored()
        store = AuthStore(storage)

        store.initialize(now=ALICE.exp)

        assert store.state == AuthState.UNAUTHENTICATED
        assert storage.get_item(AUTH_TOKEN_KEY) is None

    def test_user_without_expiry_never_expires(self):
        store = AuthStore(_stored(AuthUser(email="bob@example.com")))

        store.initialize(now=10**12)

        assert store.is_authenticated is True

    def test_unreadable_user_is_dropped(self):
        storage = MemoryStorage({AUTH_TOKEN_KEY: "at", AUTH_USER_KEY: "{not json"})
        store = AuthStore(storage)

        store.initialize()

        assert store.state == AuthState.UNAUTHENTICATED
        assert storage.keys() == []


class TestCheckConfiguration:
    @pytest.mark.asyncio
    async def test_disabled_server(self):
        client = MagicMock()
        client.is_auth_enabled = AsyncMock(return_value=False)
        store = AuthStore(_stored())

        await store.check_configuration(client)

        assert store.auth_enabled is False
        assert store.state == AuthState.DISABLED

    @pytest.mark.asyncio
    async def test_enabled_server_restores_login(self):
        client = MagicMock()
        client.is_auth_enabled = AsyncMock(return_value=True)
        store = AuthStore(_stored(AuthUser(email="alice@example.com")))

        await store.check_configuration(client)

        assert store.auth_enabled is True
        assert store.is_authenticated is True


class TestProcessMagicLink:
    @pytest.mark.asyncio
    async def test_success(self):
        client = MagicMock()
        session = MagicLinkSession(user=ALICE, token="at", refresh_token="rt")
        client.process_magic_link_url = AsyncMock(return_value=session)
        storage = MemoryStorage()
        store = AuthStore(storage)

        assert await store.process_magic_link(client, "http://web.test/#access_token=at") is True

        assert store.is_authenticated is True
        assert storage.get_item(AUTH_TOKEN_KEY) == "at"

    @pytest.mark.asyncio
    async def test_failure_logs_out(self):
        client = MagicMock()
        client.process_magic_link_url = AsyncMock(return_value=None)
        store = AuthStore(_stored())
        store.initialize(now=0)

        assert await store.process_magic_link(client, "http://web.test/") is False

        assert store.state == AuthState.UNAUTHENTICATED
        assert store.token is None

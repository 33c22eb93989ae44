"""Shared fixtures for tombola client tests."""

import pytest

from shared.storage import MemoryStorage
from tombola.session.credentials import SessionCache
from tombola.session.store import GameStore
from tombola.tests.helpers.cards import make_card
from tombola.tests.mocks.api import MockTombolaApi


@pytest.fixture
def api() -> MockTombolaApi:
    mock = MockTombolaApi()
    for card_id in ("card-1", "card-2", "card-3"):
        mock.cards[card_id] = make_card(card_id)
    return mock


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(api, storage) -> GameStore:
    return GameStore(api, SessionCache(storage))

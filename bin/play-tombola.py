"""Follow a Tombola game from the terminal.

Selects (or creates) a game, connects, optionally registers, then polls the
server and logs each card's score, completed lines and highlighted numbers.

Usage:
    uv run python bin/play-tombola.py --game <game_id> --name Alice --cards 3
    uv run python bin/play-tombola.py --new-game --ticks 10
    uv run python bin/play-tombola.py --magic-link "<url from the login email>"
    uv run python bin/play-tombola.py --logout
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from shared.logging import setup_logging
from shared.storage import LocalStorage
from tombola.api.client import TombolaApiClient
from tombola.auth.client import AuthClient
from tombola.auth.store import AuthStore
from tombola.logic.achievements import NumberHighlight
from tombola.logic.scoring import get_score_text
from tombola.session.credentials import SessionCache
from tombola.session.scheduler import PollScheduler
from tombola.session.store import DEFAULT_CARD_COUNT, GameStore
from tombola.settings import TombolaSettings

logger = structlog.get_logger()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Follow a Tombola game and report card achievements")
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("--game", help="game id to follow (default: last selected game)")
    selection.add_argument("--new-game", action="store_true", help="create a new game and follow it")
    parser.add_argument("--name", help="register under this name if not registered yet")
    parser.add_argument("--cards", type=int, default=DEFAULT_CARD_COUNT, help="cards to request at registration")
    parser.add_argument("--ticks", type=int, default=0, help="stop after this many reports (0 = run until Ctrl+C)")
    parser.add_argument("--storage", help="storage file (default: TOMBOLA_STORAGE_PATH)")
    parser.add_argument("--magic-link", help="log in with the URL from a magic-link email")
    parser.add_argument("--logout", action="store_true", help="forget the stored game identity and login")
    return parser.parse_args()


def report(store: GameStore) -> None:
    """Log the current snapshot the way the card view would render it."""
    state = store.state
    achievements = store.achievements()
    summary = achievements.player_achievements()
    logger.info(
        "game snapshot",
        game_id=state.game_id,
        extracted=len(state.board.numbers),
        remaining=len(state.pouch.numbers),
        published=get_score_text(state.score_card.published_score) if state.score_card.published_score else None,
        best_score=summary.score,
        lines=summary.lines,
        bingo=summary.bingo,
        error=state.error,
    )
    for card in state.cards:
        achievement = achievements.card_achievement(card.card_id)
        highlighted = {
            n: kind
            for n in card.numbers
            if (kind := achievements.number_highlight(n, card.card_id)) != NumberHighlight.NONE
        }
        logger.info(
            "card",
            card_id=card.card_id,
            score=achievements.card_score(card),
            lines=achievements.card_lines(card),
            achievement=achievement.text if achievement else None,
            highlighted=highlighted,
        )


async def main() -> int:
    args = parse_args()
    settings = TombolaSettings()
    setup_logging(log_dir=settings.log_dir, debug=settings.debug_mode)

    storage = LocalStorage(args.storage or settings.storage_path)
    auth_store = AuthStore(storage)

    if args.magic_link:
        async with AuthClient(settings.auth_base_url, timeout=settings.request_timeout) as auth_client:
            if not await auth_store.process_magic_link(auth_client, args.magic_link):
                logger.error("magic link could not be verified")
                return 1
    else:
        auth_store.initialize()

    async with TombolaApiClient.from_settings(settings, token_source=auth_store.bearer_token) as api:
        store = GameStore(api, SessionCache(storage), user_email=auth_store.email)
        store.restore()

        if args.logout:
            store.reset()
            auth_store.sign_out()
            logger.info("logged out")
            return 0

        if args.new_game:
            if await store.create_game() is None:
                logger.error("could not create game", error=store.state.error)
                return 1
        elif args.game:
            store.set_game(args.game)

        if not await store.connect():
            logger.error("could not connect", game_id=store.state.game_id, error=store.state.error)
            return 1

        if args.name and not store.state.is_registered and not await store.register(args.name, args.cards):
            logger.error("registration failed", name=args.name, error=store.state.error)
            return 1

        scheduler = PollScheduler(store, settings.poll_interval_ms)
        scheduler.start()
        reports = 0
        try:
            while args.ticks == 0 or reports < args.ticks:
                await asyncio.sleep(settings.poll_interval_ms / 1000)
                report(store)
                reports += 1
        finally:
            await scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

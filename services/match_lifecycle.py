"""
Demo lifecycle of a game: unknown -> requested -> ready -> parsed.

advance_match() is the only place a game changes state. The poller's
discovery path, both webhooks and the manual /addmatch command all go
through it, so the two triggers (polling and callbacks) cannot drift apart.
"""

from typing import Iterable, Optional, Tuple

from event_logger import log_event
from models.entities import GAME_STATUSES, Game
from models.store import EntityStore


def advance_match(
    store: EntityStore,
    share_code: str,
    status: str,
    demo_name: Optional[str] = None,
    steam_ids: Optional[Iterable[str]] = None,
) -> Tuple[Game, Optional[str]]:
    """
    Create or move a game forward to `status`.

    - Unknown share codes are created directly in `status`, which lets a
      demoReady or demoParsed callback arrive before any poll saw the code
    - Known games never move backwards; anything arriving after "parsed"
      leaves the game untouched
    - Players are merged into the game until it is parsed

    Args:
        store: Entity store
        share_code: Match share code
        status: Target status (requested, ready or parsed)
        demo_name: Demo path/name reported by the demo service, if any
        steam_ids: Participants discovered so far, if any

    Returns:
        Tuple of (game after the transition, status before it or None if
        the game was just created)
    """
    if status not in GAME_STATUSES:
        raise ValueError(f"Invalid game status: {status}")

    players = list(steam_ids) if steam_ids is not None else None

    created = store.create_game(
        share_code,
        demo_name=demo_name or "",
        status=status,
        steam_ids=players or [],
    )
    if created:
        game = store.get_game(share_code)
        _log_transition(game, None)
        return game, None

    previous = store.get_game(share_code)
    if previous.is_parsed:
        return previous, previous.status

    game = store.update_game(
        share_code,
        demo_name=demo_name,
        status=status,
        steam_ids=players,
    )
    if game.status != previous.status:
        _log_transition(game, previous.status)
    return game, previous.status


def _log_transition(game: Game, previous_status: Optional[str]) -> None:
    print(f"🎯 Match {game.share_code}: {previous_status or 'unknown'} -> {game.status}")
    log_event(
        "match_state_advanced",
        share_code=game.share_code,
        previous_status=previous_status,
        status=game.status,
        demo_name=game.demo_name,
        player_count=len(game.steam_ids),
    )

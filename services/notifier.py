"""
Match summary fan-out for the CS Match Summary Bot.

Given a parsed game, find every guild with at least one registered player
in it and deliver exactly one summary per guild. Each guild only sees the
players that belong to it, plus the participants nobody registered.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

from errors import ChatUnavailableError, NotFoundError, NotificationDeliveryError, StorageError
from event_logger import log_event
from models.entities import Game, Guild, User
from models.store import EntityStore


class ChatAdapter(Protocol):
    """What the fan-out needs from the chat platform."""

    async def send_notification(self, channel_id: str, summary: "MatchSummary") -> None:
        """Deliver a summary to a channel; raise on failure."""

    def resolve_account_display(self, steam_id: str) -> Optional[str]:
        """Human friendly name for a Steam account, if the platform knows one."""


@dataclass
class RegisteredPlayer:
    steam_id: str
    display: Optional[str] = None


@dataclass
class MatchSummary:
    """Platform-neutral content of one guild's match notification."""
    guild_id: str
    share_code: str
    demo_name: str
    player_count: int
    registered_players: List[RegisteredPlayer] = field(default_factory=list)
    unregistered_players: List[str] = field(default_factory=list)
    stats: Any = None

    @property
    def has_stats(self) -> bool:
        return self.stats is not None


class MatchNotifier:
    """
    Resolves the guilds interested in a game and notifies each one once.

    Delivery failures are logged per guild and never stop the remaining
    deliveries, nor roll back anything in the store.
    """

    def __init__(self, store: EntityStore, chat: ChatAdapter):
        self.store = store
        self.chat = chat

    def _resolve_players(self, game: Game) -> Tuple[Dict[str, User], List[str]]:
        """
        Split participants into registered users and unknown Steam IDs.

        Returns:
            Tuple of ({steam_id: user}, [unregistered steam ids])
        """
        registered: Dict[str, User] = {}
        unregistered: List[str] = []
        for steam_id in game.steam_ids:
            try:
                registered[steam_id] = self.store.get_user(steam_id)
            except NotFoundError:
                unregistered.append(steam_id)
        return registered, unregistered

    def find_guilds(self, registered: Dict[str, User]) -> Dict[str, Guild]:
        """
        Every guild whose member set holds at least one registered player.

        Membership is a linear scan over all guilds per player, which is fine
        for tens of guilds and hundreds of users. If that grows, keep an index
        of user uuid -> guild ids updated on every membership change instead.
        """
        guilds = self.store.get_all_guilds()
        interested: Dict[str, Guild] = {}
        for user in registered.values():
            for guild in guilds:
                if user.uuid in guild.user_ids:
                    interested[guild.guild_id] = guild
        return interested

    def build_summary(
        self,
        guild: Guild,
        game: Game,
        registered: Dict[str, User],
        unregistered: List[str],
        stats: Any = None,
    ) -> MatchSummary:
        """Summary scoped to one guild's own members."""
        members = set(guild.user_ids)
        players = [
            RegisteredPlayer(
                steam_id=steam_id,
                display=self.chat.resolve_account_display(steam_id),
            )
            for steam_id, user in registered.items()
            if user.uuid in members
        ]
        return MatchSummary(
            guild_id=guild.guild_id,
            share_code=game.share_code,
            demo_name=game.demo_name,
            player_count=len(game.steam_ids),
            registered_players=players,
            unregistered_players=list(unregistered),
            stats=stats,
        )

    async def notify(self, game: Game, stats: Any = None) -> List[str]:
        """
        Send the match summary to every interested guild.

        Args:
            game: The game to announce
            stats: Opaque parse result, passed through untouched

        Returns:
            Guild IDs that were notified successfully

        Raises:
            ChatUnavailableError: the chat connection is not up
            StorageError: the guilds could not be read
        """
        registered, unregistered = self._resolve_players(game)
        guilds = self.find_guilds(registered)

        if not guilds:
            print(f"ℹ️ No guild to notify for match {game.share_code}")
            log_event(
                "notification_skipped",
                share_code=game.share_code,
                player_count=len(game.steam_ids),
                unregistered_count=len(unregistered),
            )
            return []

        delivered = []
        for guild in guilds.values():
            summary = self.build_summary(guild, game, registered, unregistered, stats)
            try:
                await self.chat.send_notification(guild.channel_id, summary)
            except ChatUnavailableError:
                raise
            except Exception as exc:
                error = NotificationDeliveryError(guild.guild_id, guild.channel_id, exc)
                print(f"❌ {error}")
                log_event(
                    "notification_failed",
                    guild_id=guild.guild_id,
                    channel_id=guild.channel_id,
                    share_code=game.share_code,
                    placeholder_channel=guild.has_placeholder_channel,
                    error=exc,
                )
                continue

            delivered.append(guild.guild_id)
            log_event(
                "notification_sent",
                guild_id=guild.guild_id,
                channel_id=guild.channel_id,
                share_code=game.share_code,
                registered_players=[p.steam_id for p in summary.registered_players],
                unregistered_count=len(unregistered),
            )
            try:
                self.store.add_game_to_guild(guild.guild_id, game.uuid)
            except (NotFoundError, StorageError) as exc:
                print(f"⚠️ Could not record match {game.share_code} on guild {guild.guild_id}: {exc}")

        print(f"📨 Match {game.share_code} sent to {len(delivered)}/{len(guilds)} guild(s)")
        return delivered

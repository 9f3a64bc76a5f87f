"""
Error taxonomy for the CS Match Summary Bot.

Multi-item loops (poll cycles, fan-out) catch these per item and log them.
Single-request boundaries (webhooks, query API, slash commands) turn them
into a structured error response.
"""


class MatchBotError(Exception):
    """Base class for every error raised by the bot core."""


class NotFoundError(MatchBotError):
    """A keyed lookup found no entity."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class ValidationError(MatchBotError):
    """Malformed input: missing field, bad share code, reported failure."""


class ExternalServiceError(MatchBotError):
    """The Steam API or the demo service failed or answered with an error."""


class NotificationDeliveryError(MatchBotError):
    """A match summary could not be delivered to a guild channel."""

    def __init__(self, guild_id: str, channel_id: str, cause: BaseException):
        super().__init__(
            f"failed to notify guild {guild_id} in channel {channel_id}: {cause}"
        )
        self.guild_id = guild_id
        self.channel_id = channel_id
        self.cause = cause


class StorageError(MatchBotError):
    """The persistence layer failed."""


class ChatUnavailableError(MatchBotError):
    """The chat connection is not up yet; the whole fan-out should be retried."""

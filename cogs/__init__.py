"""
Cogs module for the CS Match Summary Bot.

This module contains Discord slash commands and background tasks organized as Cogs.
"""

from cogs.accounts import AccountsCog
from cogs.tracking import TrackingCog

__all__ = [
    "AccountsCog",
    "TrackingCog",
]

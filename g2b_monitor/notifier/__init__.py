"""Notification sinks for newly found announcements."""

from .discord import DiscordNotifier

__all__ = ["DiscordNotifier"]

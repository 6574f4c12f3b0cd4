"""Data models for the replay sync application."""

from .config import AppConfig
from .replay import REPLAY_EXTENSIONS, ReplayDescriptor
from .sync import SyncPlan, SyncReport

__all__ = [
    "AppConfig",
    "REPLAY_EXTENSIONS",
    "ReplayDescriptor",
    "SyncPlan",
    "SyncReport",
]

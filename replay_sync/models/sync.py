"""Reconciliation and run summary data models."""

from dataclasses import dataclass, field
from pathlib import Path

from .replay import ReplayDescriptor


@dataclass(frozen=True)
class SyncPlan:
    """Outcome of comparing remote replays with the local directory."""
    desired_paths: list[Path]
    to_download: list[ReplayDescriptor]
    existing_replay_files: list[Path]


@dataclass
class SyncReport:
    """Summary of a completed synchronization run."""
    streams: list[str]
    replays_found: int = 0
    downloaded: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    rate_limited: bool = False

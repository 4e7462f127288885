# src/task_tracker/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..data.provider import DataProvider
from ..tasks.task_models import TaskFilters
from .ports import TaskBackend


@dataclass
class AppState:
    # Store Settings on the state for easy access in command handlers.
    settings: object

    backend: TaskBackend
    provider: DataProvider

    # Last filters used by /list, reused when /list is called without args.
    filters: TaskFilters = field(default_factory=TaskFilters)

"""Picker sessions, the active/latest registry, and builtin pickers."""

from __future__ import annotations

from . import builtins
from .registry import PickerRegistry
from .session import ACTIONS, PickerMatches, PickerSession
from .state import STATUS_ACTIVE, STATUS_STOPPED, PickerState
from .view import NullRenderer, PickerInfo, PickerRenderer, PickerView

__all__ = [
    "ACTIONS",
    "STATUS_ACTIVE",
    "STATUS_STOPPED",
    "NullRenderer",
    "PickerInfo",
    "PickerMatches",
    "PickerRegistry",
    "PickerRenderer",
    "PickerSession",
    "PickerState",
    "PickerView",
    "builtins",
]

"""Picker options, validation, and persisted JSON defaults.

Options are validated once when a session starts; any problem raises
:class:`PickerConfigError` before the picker does work. Persisted defaults
are read defensively: missing or malformed config falls back silently.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "lazypick"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

DIRECTIONS = ("from_top", "from_bottom")
CASE_MODES = ("ignore", "smart", "respect")


class PickerError(RuntimeError):
    """Misuse of the picker API."""


class PickerConfigError(ValueError):
    """Invalid picker configuration, surfaced before any work starts."""


@dataclass(frozen=True)
class PickerOptions:
    """Everything one picker session needs to run.

    ``items`` is a sequence or a callable taking the session. A callable may
    return items directly or ``None`` and call ``session.set_items`` later.
    ``match`` is ``None`` for the built-in matcher.
    """

    name: str = "<No name>"
    items: Sequence[object] | Callable[..., object] | None = None
    cwd: Path | None = None
    match: Callable[..., object] | None = None
    choose: Callable[[object], object] | None = None
    choose_all: Callable[[list[object]], object] | None = None
    direction: str = "from_top"
    use_cache: bool = False
    case_mode: str = "smart"
    delay_async: float = 0.010
    delay_busy: float = 0.050
    window_height: int = 20


def _is_positive_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def validate_picker_options(options: PickerOptions) -> PickerOptions:
    """Check ``options`` and fill derived defaults.

    Returns a new options object with ``items`` defaulting to an empty list
    and ``cwd`` resolved to an absolute directory.
    """
    items = [] if options.items is None else options.items
    is_sequence = isinstance(items, Sequence) and not isinstance(items, (str, bytes))
    if not (is_sequence or callable(items)):
        raise PickerConfigError("`items` should be a list or callable.")

    for field_name in ("match", "choose", "choose_all"):
        value = getattr(options, field_name)
        if value is not None and not callable(value):
            raise PickerConfigError(f"`{field_name}` should be callable.")

    if options.direction not in DIRECTIONS:
        raise PickerConfigError('`direction` should be one of "from_top" or "from_bottom".')
    if not isinstance(options.use_cache, bool):
        raise PickerConfigError("`use_cache` should be boolean.")
    if options.case_mode not in CASE_MODES:
        raise PickerConfigError(f"`case_mode` should be one of {', '.join(CASE_MODES)}.")
    for field_name in ("delay_async", "delay_busy"):
        if not _is_positive_number(getattr(options, field_name)):
            raise PickerConfigError(f"`{field_name}` should be a positive number.")
    if isinstance(options.window_height, bool) or not isinstance(options.window_height, int) or options.window_height <= 0:
        raise PickerConfigError("`window_height` should be a positive integer.")

    cwd = Path.cwd() if options.cwd is None else Path(options.cwd).expanduser()
    if not cwd.is_dir():
        raise PickerConfigError("`cwd` should be a valid directory path.")

    return replace(options, name=str(options.name), items=items, cwd=cwd.resolve())


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Any filesystem/serialization error is ignored to keep runtime behavior
    non-fatal when config cannot be written.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception:
        pass


def load_picker_defaults() -> dict[str, object]:
    """Read persisted option defaults, dropping every invalid value."""
    data = load_config()
    defaults: dict[str, object] = {}

    direction = data.get("direction")
    if direction in DIRECTIONS:
        defaults["direction"] = direction
    case_mode = data.get("case_mode")
    if case_mode in CASE_MODES:
        defaults["case_mode"] = case_mode
    use_cache = data.get("use_cache")
    if isinstance(use_cache, bool):
        defaults["use_cache"] = use_cache
    for key in ("delay_async", "delay_busy"):
        value = data.get(key)
        if _is_positive_number(value):
            defaults[key] = float(value)
    window_height = data.get("window_height")
    if isinstance(window_height, int) and not isinstance(window_height, bool) and window_height > 0:
        defaults["window_height"] = window_height
    return defaults


def save_picker_defaults(**values: object) -> None:
    """Merge ``values`` into the persisted config, skipping invalid ones."""
    config = load_config()
    for key, value in values.items():
        try:
            config[key] = _validate_default(key, value)
        except PickerConfigError:
            continue
    save_config(config)


def _validate_default(key: str, value: object) -> object:
    if key == "direction" and value in DIRECTIONS:
        return value
    if key == "case_mode" and value in CASE_MODES:
        return value
    if key == "use_cache" and isinstance(value, bool):
        return value
    if key in ("delay_async", "delay_busy") and _is_positive_number(value):
        return float(value)
    if key == "window_height" and isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    raise PickerConfigError(f"invalid default {key}={value!r}")


def build_picker_options(**overrides: object) -> PickerOptions:
    """Create options from persisted defaults overlaid with ``overrides``."""
    return PickerOptions(**{**load_picker_defaults(), **overrides})

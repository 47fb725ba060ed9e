"""Settings storage for tool names and housekeeping options."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "MIXED_BUILD_SETTINGS_PATH",
        Path.home() / ".config" / "mixed-build" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_CHECKVINTF_TOOL = "checkvintf"
DEFAULT_CHECK_VINTF_TOOL = "check_target_files_vintf"
DEFAULT_MIRROR_EXCLUDES = ("logs",)
DEFAULT_COMPRESSION_LEVEL = 6

DEFAULT_SETTINGS: dict[str, Any] = {
    "checkvintf_tool": DEFAULT_CHECKVINTF_TOOL,
    "check_vintf_tool": DEFAULT_CHECK_VINTF_TOOL,
    "temp_dir": None,
    "log_dir": None,
    "mirror_excludes": list(DEFAULT_MIRROR_EXCLUDES),
    "archive_compression_level": DEFAULT_COMPRESSION_LEVEL,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def _is_tool_name(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _is_optional_path(value: Any) -> bool:
    return value is None or isinstance(value, str)


def _is_exclude_list(value: Any) -> bool:
    if isinstance(value, str):
        return True
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _is_compression_level(value: Any) -> bool:
    # bool is an int subclass; zlib accepts 0-9
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 9


# A value failing its check keeps the default, like a malformed file does.
_VALIDATORS = {
    "checkvintf_tool": _is_tool_name,
    "check_vintf_tool": _is_tool_name,
    "temp_dir": _is_optional_path,
    "log_dir": _is_optional_path,
    "mirror_excludes": _is_exclude_list,
    "archive_compression_level": _is_compression_level,
}


def load_settings(path: Path | None = None) -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    path = path or SETTINGS_PATH
    if not path.exists():
        return
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if not isinstance(data, dict):
        return
    for key, value in data.items():
        check = _VALIDATORS.get(key)
        if check is None or check(value):
            settings_store.values[key] = value


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_path(key: str) -> Path | None:
    value = get_setting(key)
    if not value:
        return None
    return Path(value).expanduser()


def get_excludes() -> tuple[str, ...]:
    value = get_setting("mirror_excludes", DEFAULT_MIRROR_EXCLUDES)
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


load_settings()

"""VINTF manifest file selection and the system/device compatibility check.

``checkvintf --dump-file-list`` prints the files the compatibility check
reads, as device paths (``/vendor/etc/vintf/``). Entries ending in ``/`` are
directories. Each directory is mapped onto the target-files layout of the
archive that owns the partition, e.g. ``/product/etc/vintf/`` becomes
``PRODUCT/etc/vintf/*`` or ``SYSTEM/product/etc/vintf/*`` depending on which
one the system archive actually contains.
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from mixed_build.config import settings
from mixed_build.logging import get_logger
from mixed_build.storage.archives import extract_entries, list_entries, match_entries
from mixed_build.storage.command_runners import resolve_tool, run_checked_command
from mixed_build.storage.exceptions import CompatibilityCheckError

log = get_logger(source=__name__)

SYSTEM_PARTITION_MAP: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "/system": ("SYSTEM",),
        "/product": ("PRODUCT", "SYSTEM/product"),
        "/system_ext": ("SYSTEM_EXT", "SYSTEM/system_ext"),
    }
)

DEVICE_PARTITION_MAP: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "/vendor": ("VENDOR",),
        "/odm": ("ODM", "VENDOR/odm"),
    }
)


def dump_required_files(env: Optional[Mapping[str, str]] = None) -> list[str]:
    """Ask checkvintf which files the compatibility check needs."""
    tool = resolve_tool(settings.get_setting("checkvintf_tool"), env)
    output = run_checked_command([tool, "--dump-file-list"], env=env)
    return [line.strip() for line in output.splitlines() if line.strip()]


def find_mount_point(path: str, partition_map: Mapping[str, Sequence[str]]) -> Optional[str]:
    """Return the mount point of ``partition_map`` that ``path`` lies under."""
    for mount_point in partition_map:
        if path == mount_point or path.startswith(mount_point + "/"):
            return mount_point
    return None


def candidate_patterns(directory: str, partition_map: Mapping[str, Sequence[str]]) -> list[str]:
    """Map a directory entry to archive patterns, one per alias candidate."""
    mount_point = find_mount_point(directory, partition_map)
    if mount_point is None:
        return []
    suffix = directory[len(mount_point):]
    return [f"{candidate}{suffix}*" for candidate in partition_map[mount_point]]


def select_patterns(
    required_files: Iterable[str],
    archive: Path,
    partition_map: Mapping[str, Sequence[str]],
) -> list[str]:
    """Select the patterns of ``archive`` that cover the required directories.

    Only directory entries are considered. Every alias candidate with at
    least one matching entry in ``archive`` is kept.
    """
    names = list_entries(archive)
    patterns: list[str] = []
    for entry in required_files:
        if not entry.endswith("/"):
            continue
        for pattern in candidate_patterns(entry, partition_map):
            if pattern in patterns:
                continue
            if match_entries(names, pattern):
                patterns.append(pattern)
            else:
                log.debug(f"{archive.name} has no entries for {pattern}")
    return patterns


def build_file_lists(
    system_archive: Path,
    device_archive: Path,
    env: Optional[Mapping[str, str]] = None,
) -> tuple[list[str], list[str]]:
    """Build the VINTF extraction lists for the system and device archives."""
    required = dump_required_files(env)
    log.debug(f"checkvintf requires {len(required)} paths")
    system_patterns = select_patterns(required, system_archive, SYSTEM_PARTITION_MAP)
    device_patterns = select_patterns(required, device_archive, DEVICE_PARTITION_MAP)
    log.info(
        f"VINTF files: {len(system_patterns)} system patterns, "
        f"{len(device_patterns)} device patterns"
    )
    return system_patterns, device_patterns


def check_compatibility(
    system_archive: Path,
    system_patterns: Sequence[str],
    device_artifacts_dir: Path,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    """Overlay the system manifests onto the device artifacts and check them.

    Raises:
        CompatibilityCheckError: If the check fails
    """
    extract_entries(system_archive, system_patterns, device_artifacts_dir)
    tool = resolve_tool(settings.get_setting("check_vintf_tool"), env)
    log.info("Checking VINTF compatibility between system and device")
    run_checked_command(
        [tool, str(device_artifacts_dir)],
        env=env,
        error_class=CompatibilityCheckError,
    )
    log.success("VINTF compatibility check passed")

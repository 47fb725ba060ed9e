"""Vendor-compatibility patching of the system image."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Mapping, Optional

from mixed_build.logging import get_logger
from mixed_build.storage.archives import extract_entries
from mixed_build.storage.command_runners import run_checked_command

log = get_logger(source=__name__)

SECURITY_PATCH_PROPERTY = "ro.build.version.security_patch"
SYSTEM_IMAGE_ENTRY = "IMAGES/system.img"


def read_build_prop(path: Path) -> dict[str, str]:
    """Parse a build.prop file into a dict. Comments and blank lines are skipped."""
    properties: dict[str, str] = {}
    with open(path, "r", encoding="utf-8", errors="replace") as prop_file:
        for line in prop_file:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            properties[key.strip()] = value.strip()
    return properties


def security_patch_level(build_prop: Path) -> Optional[str]:
    if not build_prop.is_file():
        log.warning(f"{build_prop} not found; security patch level unknown")
        return None
    return read_build_prop(build_prop).get(SECURITY_PATCH_PROPERTY) or None


def modify_command(
    modify_script: Path,
    vendor_version: str,
    archive: Path,
    system_spl: Optional[str],
    device_spl: Optional[str],
) -> list[str]:
    """Build the modify script invocation.

    The device security patch level is appended only when it differs from the
    system one.
    """
    command = [str(modify_script), vendor_version, str(archive)]
    if device_spl and device_spl != system_spl:
        command.append(device_spl)
    return command


def patch_system_image(
    *,
    system_target_files: Path,
    patched_copy: Path,
    modify_script: Path,
    vendor_version: str,
    system_build_prop: Path,
    device_build_prop: Path,
    system_images_dir: Path,
    env: Optional[Mapping[str, str]] = None,
) -> Path:
    """Run the modify script on a copy of the system target-files archive.

    The patched ``system.img`` replaces the one in ``system_images_dir``.

    Returns:
        Path of the patched system image
    """
    log.info(f"Copying {system_target_files} to {patched_copy}")
    shutil.copyfile(system_target_files, patched_copy)

    system_spl = security_patch_level(system_build_prop)
    device_spl = security_patch_level(device_build_prop)
    if device_spl and device_spl != system_spl:
        log.info(f"Security patch levels differ: system={system_spl} device={device_spl}")

    command = modify_command(modify_script, vendor_version, patched_copy, system_spl, device_spl)
    log.info(f"Patching system image for vendor version {vendor_version}")
    run_checked_command(command, env=env)

    extract_entries(patched_copy, [SYSTEM_IMAGE_ENTRY], system_images_dir, junk_paths=True)
    return system_images_dir / Path(SYSTEM_IMAGE_ENTRY).name

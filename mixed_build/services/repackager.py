"""Repackaging of the merged device images into the output directory."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional, Sequence

from mixed_build.logging import get_logger
from mixed_build.storage.archives import create_archive, mirror_directory

from .merger import ANDROID_INFO

log = get_logger(source=__name__)

MIXED_ARCHIVE_NAME = "mixed.zip"


def repackage(
    *,
    device_images_dir: Path,
    device_dir: Path,
    device_image_archive: Path,
    out_dir: Path,
    excludes: Sequence[str] = ("logs",),
    compresslevel: Optional[int] = None,
) -> Path:
    """Zip the merged images and lay out the output directory.

    The output mirrors the device build directory, with the device image
    archive replaced by the merged one and android-info.txt updated.

    Returns:
        Path of the merged archive in the output directory
    """
    mixed_zip = create_archive(
        device_images_dir,
        device_images_dir / MIXED_ARCHIVE_NAME,
        compresslevel=compresslevel,
    )

    out_dir.mkdir(parents=True, exist_ok=True)
    mirror_directory(device_dir, out_dir, excludes)

    output_archive = out_dir / device_image_archive.name
    shutil.copyfile(mixed_zip, output_archive)
    log.info(f"Wrote merged images to {output_archive}")

    android_info = device_images_dir / ANDROID_INFO
    if android_info.is_file():
        shutil.copyfile(android_info, out_dir / ANDROID_INFO)
    else:
        log.warning(f"Device images have no {ANDROID_INFO}; not updating it in {out_dir}")
    return output_archive

"""Merging of system images into the device image directory."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from mixed_build.logging import get_logger

log = get_logger(source=__name__)

ANDROID_INFO = "android-info.txt"
PRODUCT_PARTITION_LINE = "partition-exists=product"


def replace_image(source: Path, target: Path) -> None:
    log.info(f"Replacing {target.name} with {source}")
    shutil.copyfile(source, target)


def replace_existing_image(source: Path, target: Path) -> bool:
    """Replace ``target`` only if it already exists. Returns True if replaced."""
    if not target.exists():
        log.debug(f"{target.name} not present in device images; leaving it out")
        return False
    replace_image(source, target)
    return True


def drop_product_partition(android_info: Path) -> None:
    """Remove every line declaring a product partition from android-info.txt."""
    if not android_info.is_file():
        return
    lines = android_info.read_bytes().splitlines(keepends=True)
    marker = PRODUCT_PARTITION_LINE.encode()
    kept = [line for line in lines if not line.rstrip(b"\r\n").endswith(marker)]
    if len(kept) != len(lines):
        log.info(f"Removing product partition from {android_info.name}")
        android_info.write_bytes(b"".join(kept))


def merge_images(
    *,
    system_images_dir: Path,
    device_images_dir: Path,
    include_product: bool = False,
    skip_vbmeta_replace: bool = False,
    vbmeta_override: Optional[Path] = None,
    boot_override: Optional[Path] = None,
) -> None:
    """Overwrite device images with their system counterparts.

    vbmeta.img and boot.img are only replaced, never introduced.
    """
    replace_image(system_images_dir / "system.img", device_images_dir / "system.img")

    if include_product:
        system_product = system_images_dir / "product.img"
        device_product = device_images_dir / "product.img"
        if system_product.exists():
            replace_image(system_product, device_product)
        else:
            if device_product.exists():
                log.info("System build has no product.img; removing the device one")
                device_product.unlink()
            drop_product_partition(device_images_dir / ANDROID_INFO)

    if not skip_vbmeta_replace:
        vbmeta_source = vbmeta_override or system_images_dir / "vbmeta.img"
        replace_existing_image(vbmeta_source, device_images_dir / "vbmeta.img")

    if boot_override is not None:
        replace_existing_image(boot_override, device_images_dir / "boot.img")

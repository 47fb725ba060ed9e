"""
Pytest configuration and shared fixtures for mixed-build tests.

This module provides common fixtures and utilities used across all test modules.
"""

import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import pytest
from loguru import logger

from mixed_build.config import settings


SYSTEM_BUILD_PROP = "ro.build.id=GSI\nro.build.version.security_patch=2023-01-01\n"
DEVICE_BUILD_PROP = "ro.build.id=DEVICE\nro.build.version.security_patch=2023-02-01\n"
ANDROID_INFO = "require board=sample\nrequire version-bootloader=1.0\npartition-exists=product\n"


def make_zip(path: Path, entries: Dict[str, Union[str, bytes]]) -> Path:
    """Write a zip archive holding ``entries`` (name -> content)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def read_zip(path: Path) -> Dict[str, bytes]:
    with zipfile.ZipFile(path) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


# ==============================================================================
# Build Tree Fixtures
# ==============================================================================


@dataclass
class BuildTree:
    system_dir: Path
    device_dir: Path
    out_dir: Path
    system_target_files: Path
    device_image: Path
    device_target_files: Path


def default_system_entries() -> Dict[str, Union[str, bytes]]:
    return {
        "IMAGES/system.img": b"gsi-system",
        "IMAGES/vbmeta.img": b"gsi-vbmeta",
        "SYSTEM/build.prop": SYSTEM_BUILD_PROP,
        "SYSTEM/etc/vintf/manifest.xml": "<manifest type=\"framework\"/>",
        "SYSTEM/product/etc/vintf/manifest.xml": "<manifest type=\"framework\"/>",
        "META/misc_info.txt": "build_type=user\n",
    }


def default_device_images() -> Dict[str, Union[str, bytes]]:
    return {
        "system.img": b"device-system",
        "vendor.img": b"device-vendor",
        "boot.img": b"device-boot",
        "vbmeta.img": b"device-vbmeta",
        "product.img": b"device-product",
        "android-info.txt": ANDROID_INFO,
    }


def default_device_entries() -> Dict[str, Union[str, bytes]]:
    return {
        "SYSTEM/build.prop": DEVICE_BUILD_PROP,
        "VENDOR/build.prop": "ro.vendor.build.id=DEVICE\n",
        "META/misc_info.txt": "build_type=userdebug\n",
        "META/ab_partitions.txt": "system\nvendor\n",
        "VENDOR/etc/vintf/manifest.xml": "<manifest type=\"device\"/>",
        "VENDOR/odm/etc/vintf/manifest.xml": "<manifest type=\"device\"/>",
        "VENDOR/lib/libfoo.so": b"\x7fELF",
    }


def make_build_tree(
    root: Path,
    *,
    system_entries: Optional[Dict[str, Union[str, bytes]]] = None,
    device_images: Optional[Dict[str, Union[str, bytes]]] = None,
    device_entries: Optional[Dict[str, Union[str, bytes]]] = None,
) -> BuildTree:
    """Create system and device build directories with minimal archives."""
    system_dir = root / "system_build"
    device_dir = root / "device_build"
    out_dir = root / "out"
    system_target_files = make_zip(
        system_dir / "aosp_arm64-target_files-1000.zip",
        default_system_entries() if system_entries is None else system_entries,
    )
    device_image = make_zip(
        device_dir / "sample-img-2000.zip",
        default_device_images() if device_images is None else device_images,
    )
    device_target_files = make_zip(
        device_dir / "sample-target_files-2000.zip",
        default_device_entries() if device_entries is None else device_entries,
    )
    (device_dir / "logs").mkdir()
    (device_dir / "logs" / "build.log").write_text("build log\n")
    (device_dir / "bootloader.img").write_bytes(b"bootloader")
    return BuildTree(
        system_dir=system_dir,
        device_dir=device_dir,
        out_dir=out_dir,
        system_target_files=system_target_files,
        device_image=device_image,
        device_target_files=device_target_files,
    )


@pytest.fixture
def build_tree(tmp_path) -> BuildTree:
    """
    Fixture providing a system build, a device build and an output path.

    Args:
        tmp_path: pytest's built-in temporary directory fixture.

    Returns:
        BuildTree describing the directories and archives.
    """
    return make_build_tree(tmp_path)


@pytest.fixture
def scratch_root(tmp_path) -> Path:
    """
    Fixture pointing the scratch directory parent at a known location.

    Returns:
        Directory under which each run creates its temporary directory.
    """
    root = tmp_path / "scratch"
    settings.settings_store.values["temp_dir"] = str(root)
    return root


# ==============================================================================
# Subprocess Mock Fixtures
# ==============================================================================


@pytest.fixture
def mock_subprocess_run(mocker):
    """
    Fixture providing a mock for subprocess.run.

    Returns:
        Mock object for subprocess.run
    """
    return mocker.patch("subprocess.run")


# ==============================================================================
# Global State
# ==============================================================================


@pytest.fixture(autouse=True)
def reset_settings():
    """
    Auto-use fixture that resets settings to their defaults for each test.

    This keeps a developer's own settings.json out of the test run.
    """
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)
    yield
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)


@pytest.fixture(autouse=True)
def reset_logger():
    """Auto-use fixture removing sinks added by setup_logging during a test."""
    yield
    logger.remove()

"""Domain model for a mixed build run.

Options are resolved once from the command line and then passed explicitly
through each pipeline stage; nothing here is mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


SYSTEM_TARGET_FILES_PATTERN = "*-target_files-*.zip"
DEVICE_TARGET_FILES_PATTERN = "*-target_files-*.zip"
DEVICE_IMAGE_PATTERN = "*-img-*.zip"


# ==============================================================================
# Options
# ==============================================================================


@dataclass(frozen=True)
class BuildOptions:
    """Resolved command line configuration."""

    system_dir: Path
    device_dir: Path
    out_dir: Path
    vendor_version: Optional[str] = None
    modify_script: Optional[Path] = None
    vbmeta_override: Optional[Path] = None
    boot_override: Optional[Path] = None
    otatools_zip: Optional[Path] = None
    include_product: bool = False  # -s
    skip_vbmeta_replace: bool = False  # -d

    @property
    def patch_system(self) -> bool:
        """Whether the system image is run through the modify script."""
        return self.vendor_version is not None and self.modify_script is not None


# ==============================================================================
# Archives
# ==============================================================================


@dataclass(frozen=True)
class BuildArchives:
    """The three source archives of a mixed build. Never modified in place."""

    system_target_files: Path
    device_image: Path
    device_target_files: Path


# ==============================================================================
# Scratch space
# ==============================================================================


@dataclass(frozen=True)
class ScratchLayout:
    """Subdirectories of the run's temporary directory."""

    root: Path

    @property
    def device_artifacts(self) -> Path:
        return self.root / "device_artifacts"

    @property
    def device_images(self) -> Path:
        return self.root / "device_images"

    @property
    def system_artifacts(self) -> Path:
        return self.root / "system_artifacts"

    @property
    def system_images(self) -> Path:
        return self.root / "system_images"

    @property
    def tools(self) -> Path:
        return self.root / "tools"

    @property
    def patched_system_target_files(self) -> Path:
        return self.root / "system_target_files.zip"

    def create(self) -> None:
        for directory in (
            self.device_artifacts,
            self.device_images,
            self.system_artifacts,
            self.system_images,
        ):
            directory.mkdir(parents=True, exist_ok=True)

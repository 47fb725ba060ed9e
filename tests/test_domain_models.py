"""Tests for the mixed build domain model."""

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from mixed_build.domain.models import BuildOptions, ScratchLayout


def make_options(**overrides) -> BuildOptions:
    values = dict(system_dir=Path("/s"), device_dir=Path("/d"), out_dir=Path("/o"))
    values.update(overrides)
    return BuildOptions(**values)


class TestBuildOptions:
    def test_defaults(self):
        options = make_options()

        assert options.vendor_version is None
        assert not options.include_product
        assert not options.skip_vbmeta_replace
        assert not options.patch_system

    def test_patch_system_needs_version_and_script(self):
        assert make_options(vendor_version="30", modify_script=Path("/m")).patch_system
        assert not make_options(vendor_version="30").patch_system

    def test_frozen(self):
        options = make_options()

        with pytest.raises(FrozenInstanceError):
            options.include_product = True


class TestScratchLayout:
    def test_paths(self, tmp_path):
        layout = ScratchLayout(tmp_path)

        assert layout.device_artifacts == tmp_path / "device_artifacts"
        assert layout.device_images == tmp_path / "device_images"
        assert layout.system_artifacts == tmp_path / "system_artifacts"
        assert layout.system_images == tmp_path / "system_images"
        assert layout.tools == tmp_path / "tools"
        assert layout.patched_system_target_files == tmp_path / "system_target_files.zip"

    def test_create(self, tmp_path):
        layout = ScratchLayout(tmp_path)

        layout.create()

        for directory in (
            layout.device_artifacts,
            layout.device_images,
            layout.system_artifacts,
            layout.system_images,
        ):
            assert directory.is_dir()
        assert not layout.tools.exists()

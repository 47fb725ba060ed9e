"""Tests for system image patching."""

import zipfile
from pathlib import Path

import pytest

from mixed_build.services import patcher
from mixed_build.storage.exceptions import ExternalToolFailure

from conftest import make_zip, read_zip


def write_prop(path: Path, spl) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["# begin build properties", "ro.build.id=TEST"]
    if spl is not None:
        lines.append(f"ro.build.version.security_patch={spl}")
    path.write_text("\n".join(lines) + "\n")
    return path


class TestReadBuildProp:
    def test_parses_key_values(self, tmp_path):
        prop = tmp_path / "build.prop"
        prop.write_text("# comment\n\nro.a=1\nro.b = two words \nbroken line\nro.c=x=y\n")

        assert patcher.read_build_prop(prop) == {"ro.a": "1", "ro.b": "two words", "ro.c": "x=y"}

    def test_security_patch_level(self, tmp_path):
        prop = write_prop(tmp_path / "build.prop", "2023-01-01")

        assert patcher.security_patch_level(prop) == "2023-01-01"

    def test_security_patch_level_missing_property(self, tmp_path):
        prop = write_prop(tmp_path / "build.prop", None)

        assert patcher.security_patch_level(prop) is None

    def test_security_patch_level_missing_file(self, tmp_path):
        assert patcher.security_patch_level(tmp_path / "build.prop") is None


class TestModifyCommand:
    def test_different_levels_add_device_spl(self):
        command = patcher.modify_command(
            Path("/m.sh"), "30", Path("/tmp/s.zip"), "2023-01-01", "2023-02-01"
        )

        assert command == ["/m.sh", "30", "/tmp/s.zip", "2023-02-01"]

    def test_equal_levels(self):
        command = patcher.modify_command(
            Path("/m.sh"), "30", Path("/tmp/s.zip"), "2023-01-01", "2023-01-01"
        )

        assert command == ["/m.sh", "30", "/tmp/s.zip"]

    def test_unknown_device_level(self):
        command = patcher.modify_command(Path("/m.sh"), "30", Path("/tmp/s.zip"), "2023-01-01", None)

        assert command == ["/m.sh", "30", "/tmp/s.zip"]


class TestPatchSystemImage:
    @pytest.fixture
    def setup(self, tmp_path):
        system_zip = make_zip(
            tmp_path / "gsi-target_files-1.zip",
            {"IMAGES/system.img": b"original", "IMAGES/vbmeta.img": b"v"},
        )
        images = tmp_path / "system_images"
        images.mkdir()
        (images / "system.img").write_bytes(b"original")
        return {
            "system_target_files": system_zip,
            "patched_copy": tmp_path / "scratch" / "system_target_files.zip",
            "modify_script": tmp_path / "modify.sh",
            "vendor_version": "30",
            "system_build_prop": write_prop(tmp_path / "sys" / "build.prop", "2023-01-01"),
            "device_build_prop": write_prop(tmp_path / "dev" / "build.prop", "2023-02-01"),
            "system_images_dir": images,
        }

    @staticmethod
    def fake_modify(command, env=None):
        archive = Path(command[2])
        entries = read_zip(archive)
        entries["IMAGES/system.img"] = b"patched"
        with zipfile.ZipFile(archive, "w") as zf:
            for name, content in entries.items():
                zf.writestr(name, content)
        return ""

    def test_patches_copy_and_reextracts(self, setup, mocker):
        setup["patched_copy"].parent.mkdir()
        run = mocker.patch(
            "mixed_build.services.patcher.run_checked_command", side_effect=self.fake_modify
        )

        image = patcher.patch_system_image(**setup)

        assert image.read_bytes() == b"patched"
        assert read_zip(setup["system_target_files"])["IMAGES/system.img"] == b"original"
        assert run.call_args.args[0] == [
            str(setup["modify_script"]),
            "30",
            str(setup["patched_copy"]),
            "2023-02-01",
        ]

    def test_equal_levels_pass_two_arguments(self, setup, mocker):
        setup["patched_copy"].parent.mkdir()
        write_prop(setup["device_build_prop"], "2023-01-01")
        run = mocker.patch(
            "mixed_build.services.patcher.run_checked_command", side_effect=self.fake_modify
        )

        patcher.patch_system_image(**setup)

        assert run.call_args.args[0] == [str(setup["modify_script"]), "30", str(setup["patched_copy"])]

    def test_script_failure_aborts(self, setup, mocker):
        setup["patched_copy"].parent.mkdir()
        mocker.patch(
            "mixed_build.services.patcher.run_checked_command",
            side_effect=ExternalToolFailure(["modify.sh"], 1, "bad"),
        )

        with pytest.raises(ExternalToolFailure):
            patcher.patch_system_image(**setup)

        assert (setup["system_images_dir"] / "system.img").read_bytes() == b"original"

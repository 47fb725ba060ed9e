"""The mixed build pipeline.

Stages run strictly in order; the first error aborts the run. All scratch
files live in one temporary directory that is removed on every exit path.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from mixed_build.app.context import BuildContext
from mixed_build.config import settings
from mixed_build.domain.models import (
    DEVICE_IMAGE_PATTERN,
    DEVICE_TARGET_FILES_PATTERN,
    SYSTEM_TARGET_FILES_PATTERN,
    BuildArchives,
    BuildOptions,
    ScratchLayout,
)
from mixed_build.logging import get_logger, operation_context
from mixed_build.services import merger, patcher, repackager, tools, vintf
from mixed_build.storage.archives import extract_all, extract_entries, has_entries, locate_archive

log = get_logger(source=__name__)

SYSTEM_BUILD_PROP = "SYSTEM/build.prop"
SYSTEM_IMAGE_ENTRIES = ("IMAGES/system.img", "IMAGES/vbmeta.img")
PRODUCT_IMAGE_ENTRY = "IMAGES/product.img"
DEVICE_ARTIFACT_ENTRIES = ("*/build.prop", "META/*")


def locate_archives(options: BuildOptions) -> BuildArchives:
    return BuildArchives(
        system_target_files=locate_archive(options.system_dir, SYSTEM_TARGET_FILES_PATTERN),
        device_image=locate_archive(options.device_dir, DEVICE_IMAGE_PATTERN),
        device_target_files=locate_archive(options.device_dir, DEVICE_TARGET_FILES_PATTERN),
    )


def stage_tools(context: BuildContext) -> None:
    otatools_zip = context.options.otatools_zip
    if otatools_zip is None:
        return
    context.env = tools.stage_otatools(otatools_zip, context.layout.tools, context.env)
    context.tools_staged = True


def collect_file_lists(context: BuildContext) -> None:
    system_patterns: list[str] = []
    device_patterns: list[str] = []
    if context.tools_staged:
        system_patterns, device_patterns = vintf.build_file_lists(
            context.archives.system_target_files,
            context.archives.device_target_files,
            env=context.env,
        )
    context.system_artifact_patterns = [SYSTEM_BUILD_PROP, *system_patterns]
    context.device_artifact_patterns = [*DEVICE_ARTIFACT_ENTRIES, *device_patterns]


def extract_artifacts(context: BuildContext) -> None:
    options = context.options
    archives = context.archives
    layout = context.layout

    system_images = list(SYSTEM_IMAGE_ENTRIES)
    if options.include_product and has_entries(archives.system_target_files, PRODUCT_IMAGE_ENTRY):
        system_images.append(PRODUCT_IMAGE_ENTRY)

    log.info("Extracting system artifacts")
    extract_entries(
        archives.system_target_files, context.system_artifact_patterns, layout.system_artifacts
    )
    extract_entries(
        archives.system_target_files, system_images, layout.system_images, junk_paths=True
    )

    log.info("Extracting device artifacts")
    extract_entries(
        archives.device_target_files, context.device_artifact_patterns, layout.device_artifacts
    )
    extract_all(archives.device_image, layout.device_images)


def patch_system(context: BuildContext) -> None:
    options = context.options
    if not options.patch_system:
        return
    patcher.patch_system_image(
        system_target_files=context.archives.system_target_files,
        patched_copy=context.layout.patched_system_target_files,
        modify_script=options.modify_script,
        vendor_version=options.vendor_version,
        system_build_prop=context.layout.system_artifacts / SYSTEM_BUILD_PROP,
        device_build_prop=context.layout.device_artifacts / SYSTEM_BUILD_PROP,
        system_images_dir=context.layout.system_images,
        env=context.env,
    )


def check_compatibility(context: BuildContext) -> None:
    if not context.tools_staged:
        return
    vintf.check_compatibility(
        context.archives.system_target_files,
        context.system_artifact_patterns,
        context.layout.device_artifacts,
        env=context.env,
    )


def merge(context: BuildContext) -> None:
    options = context.options
    merger.merge_images(
        system_images_dir=context.layout.system_images,
        device_images_dir=context.layout.device_images,
        include_product=options.include_product,
        skip_vbmeta_replace=options.skip_vbmeta_replace,
        vbmeta_override=options.vbmeta_override,
        boot_override=options.boot_override,
    )


def package(context: BuildContext) -> Path:
    return repackager.repackage(
        device_images_dir=context.layout.device_images,
        device_dir=context.options.device_dir,
        device_image_archive=context.archives.device_image,
        out_dir=context.options.out_dir,
        excludes=settings.get_excludes(),
        compresslevel=settings.get_setting("archive_compression_level"),
    )


def run_mixed_build(options: BuildOptions) -> Path:
    """Assemble the mixed build described by ``options``.

    Returns:
        Path of the merged device image archive in the output directory
    """
    with operation_context("mixed-build", out_dir=str(options.out_dir)):
        archives = locate_archives(options)
        temp_parent = settings.get_path("temp_dir")
        if temp_parent is not None:
            temp_parent.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix="mixed_build.", dir=temp_parent) as scratch:
            layout = ScratchLayout(Path(scratch))
            layout.create()
            log.debug(f"Scratch directory: {scratch}")
            context = BuildContext(options=options, archives=archives, layout=layout)

            stage_tools(context)
            collect_file_lists(context)
            extract_artifacts(context)
            patch_system(context)
            check_compatibility(context)
            merge(context)
            return package(context)

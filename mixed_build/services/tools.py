"""Staging of the prebuilt host tools shipped in an otatools archive."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from mixed_build.logging import get_logger
from mixed_build.storage.archives import extract_entries

log = get_logger(source=__name__)

OTATOOLS_ENTRIES = ("bin/*", "lib64/*")


def prepend_search_path(env: Mapping[str, str], key: str, directory: Path) -> str:
    """Return ``env[key]`` with ``directory`` in front."""
    current = env.get(key, "")
    if not current:
        return str(directory)
    return os.pathsep.join([str(directory), current])


def stage_otatools(otatools_zip: Path, tools_dir: Path, env: Mapping[str, str]) -> dict[str, str]:
    """Unpack ``bin/`` and ``lib64/`` from the otatools archive.

    Returns:
        A copy of ``env`` with the unpacked ``bin`` first on ``PATH`` and
        ``lib64`` first on ``LD_LIBRARY_PATH``.
    """
    log.info(f"Staging host tools from {otatools_zip}")
    extract_entries(otatools_zip, OTATOOLS_ENTRIES, tools_dir)
    staged = dict(env)
    staged["PATH"] = prepend_search_path(env, "PATH", tools_dir / "bin")
    staged["LD_LIBRARY_PATH"] = prepend_search_path(env, "LD_LIBRARY_PATH", tools_dir / "lib64")
    return staged

"""Zip archive helpers for target-files and image archives.

Entry patterns use the wildcard rules of ``unzip``: ``*`` and ``?`` match any
character, including ``/``, so ``SYSTEM/etc/vintf/*`` selects the whole
subtree.
"""

from __future__ import annotations

import os
import shutil
import zipfile
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Optional, Sequence

from mixed_build.logging import get_logger

from .exceptions import ExtractionError, MissingArchiveError

log = get_logger(source=__name__)


def locate_archive(directory: Path, pattern: str) -> Path:
    """Find the archive matching ``pattern`` anywhere under ``directory``.

    When several files match, the first one in sorted path order is used.

    Raises:
        MissingArchiveError: If nothing matches
    """
    directory = Path(directory)
    matches = sorted(path for path in directory.rglob(pattern) if path.is_file())
    if not matches:
        raise MissingArchiveError(directory, pattern)
    if len(matches) > 1:
        ignored = ", ".join(str(path) for path in matches[1:])
        log.warning(f"Several archives match {pattern} under {directory}; using {matches[0]}, ignoring {ignored}")
    log.info(f"Using archive {matches[0]}")
    return matches[0]


def _open(archive: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(archive)
    except (OSError, zipfile.BadZipFile) as error:
        raise ExtractionError(archive, str(error)) from error


def _matches(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatchcase(name, pattern) for pattern in patterns)


def list_entries(archive: Path, pattern: Optional[str] = None) -> list[str]:
    """List entry names of ``archive``, optionally filtered by ``pattern``."""
    with _open(archive) as zf:
        names = zf.namelist()
    if pattern is None:
        return names
    return match_entries(names, pattern)


def match_entries(names: Iterable[str], pattern: str) -> list[str]:
    """Return the entry names matching ``pattern``."""
    return [name for name in names if fnmatchcase(name, pattern)]


def has_entries(archive: Path, pattern: str) -> bool:
    """Return True if at least one entry of ``archive`` matches ``pattern``."""
    return bool(list_entries(archive, pattern))


def _restore_mode(info: zipfile.ZipInfo, target: Path) -> None:
    mode = (info.external_attr >> 16) & 0o777
    if mode and not info.is_dir():
        os.chmod(target, mode)


def extract_entries(
    archive: Path,
    patterns: Sequence[str],
    dest: Path,
    *,
    junk_paths: bool = False,
) -> list[Path]:
    """Extract every entry matching any of ``patterns`` into ``dest``.

    Existing files are overwritten. With ``junk_paths`` the directory part of
    each entry is dropped, as ``unzip -j`` does.

    Raises:
        ExtractionError: If the archive is unreadable or a pattern matches
            no entry
    """
    patterns = list(patterns)
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    log.debug(f"Extracting {patterns} from {archive} into {dest}")
    extracted: list[Path] = []
    with _open(archive) as zf:
        infos = zf.infolist()
        unmatched = [
            pattern
            for pattern in patterns
            if not any(fnmatchcase(info.filename, pattern) for info in infos)
        ]
        if unmatched:
            raise ExtractionError(
                archive, f"no entries match {', '.join(unmatched)}", patterns
            )
        try:
            for info in infos:
                if not _matches(info.filename, patterns):
                    continue
                if junk_paths:
                    if info.is_dir():
                        continue
                    target = dest / Path(info.filename).name
                    with zf.open(info) as source, open(target, "wb") as output:
                        shutil.copyfileobj(source, output)
                else:
                    target = Path(zf.extract(info, dest))
                _restore_mode(info, target)
                extracted.append(target)
        except (OSError, zipfile.BadZipFile) as error:
            raise ExtractionError(archive, str(error), patterns) from error
    return extracted


def extract_all(archive: Path, dest: Path) -> None:
    """Extract the complete archive into ``dest``."""
    extract_entries(archive, ["*"], dest)


def _walk_files(directory: Path) -> Iterable[Path]:
    for root, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        for filename in sorted(filenames):
            yield Path(root) / filename


def create_archive(
    directory: Path, archive: Path, *, compresslevel: Optional[int] = None
) -> Path:
    """Zip the contents of ``directory`` into ``archive`` with relative names.

    ``archive`` itself is skipped when it lives inside ``directory``.
    """
    directory = Path(directory)
    archive = Path(archive)
    files = [
        path
        for path in _walk_files(directory)
        if path.resolve() != archive.resolve()
    ]
    log.debug(f"Creating {archive} from {len(files)} files in {directory}")
    with zipfile.ZipFile(
        archive,
        "w",
        compression=zipfile.ZIP_DEFLATED,
        compresslevel=compresslevel,
        allowZip64=True,
    ) as zf:
        for path in files:
            zf.write(path, path.relative_to(directory).as_posix())
    return archive


def mirror_directory(source: Path, destination: Path, excludes: Sequence[str] = ()) -> None:
    """Copy ``source`` into ``destination``, following symlinks.

    Any file or directory whose name is in ``excludes`` is skipped at every
    depth, like ``rsync --exclude=NAME``.
    """
    log.debug(f"Mirroring {source} into {destination} (excluding {list(excludes)})")
    shutil.copytree(
        source,
        destination,
        symlinks=False,
        ignore=shutil.ignore_patterns(*excludes) if excludes else None,
        dirs_exist_ok=True,
    )


__all__ = [
    "create_archive",
    "extract_all",
    "extract_entries",
    "has_entries",
    "list_entries",
    "locate_archive",
    "match_entries",
    "mirror_directory",
]

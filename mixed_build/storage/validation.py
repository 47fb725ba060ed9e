"""Validation of command line inputs before any archive is touched.

All validation functions raise specific exceptions from the exceptions module
rather than returning boolean values, making error handling more explicit.

Example:
    from mixed_build.storage.validation import validate_vendor_version_pair

    validate_vendor_version_pair(args.vendor_version, args.modify_script)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from mixed_build.logging import get_logger

from .exceptions import MissingFileError, UsageError

log = get_logger(source=__name__)


def validate_vendor_version_pair(
    vendor_version: Optional[str], modify_script: Optional[Path]
) -> None:
    """Validate that -v and -m are given together or not at all.

    Raises:
        UsageError: If only one of them is given
    """
    if (vendor_version is None) != (modify_script is None):
        raise UsageError(
            "Vendor version (-v) and modify script (-m) must be given together"
        )


def validate_optional_file(option: str, path: Optional[Path]) -> Optional[Path]:
    """Validate that an explicitly given file exists.

    Args:
        option: Flag the path was given with, for the error message
        path: The path, or None if the flag was not given

    Returns:
        The absolute path, or None

    Raises:
        MissingFileError: If the path was given but does not exist
    """
    if path is None:
        return None
    if not path.is_file():
        raise MissingFileError(option, path)
    return path.resolve()


def resolve_otatools_zip(path: Optional[Path]) -> Optional[Path]:
    """Return the otatools archive if usable, else None with a warning.

    A missing otatools archive disables the compatibility check instead of
    failing the run.
    """
    if path is None:
        log.warning("No otatools archive given (-t); skipping VINTF compatibility check")
        return None
    if not path.is_file():
        log.warning(f"Otatools archive {path} not found; skipping VINTF compatibility check")
        return None
    return path.resolve()

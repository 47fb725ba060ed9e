"""Custom exceptions for mixed build operations.

This module defines a hierarchy of exceptions so the command line entry point
can decide how to report a failure (usage text or not) without inspecting
messages.

Exception Hierarchy:
    MixedBuildError (base)
        ├── UsageError
        │   └── MissingFileError
        ├── ArchiveError
        │   ├── MissingArchiveError
        │   └── ExtractionError
        └── ExternalToolFailure
            └── CompatibilityCheckError

Usage:
    from mixed_build.storage.exceptions import MissingArchiveError

    if not matches:
        raise MissingArchiveError(directory, pattern)
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class MixedBuildError(Exception):
    """Base exception for all mixed build operations."""



class UsageError(MixedBuildError):
    """Bad or missing command line input."""



class MissingFileError(UsageError):
    """An optional input file was given on the command line but is absent."""

    def __init__(self, option: str, path: Path | str):
        self.option = option
        self.path = str(path)
        super().__init__(f"File given with {option} does not exist: {path}")


class ArchiveError(MixedBuildError):
    """Base exception for zip archive errors."""



class MissingArchiveError(ArchiveError):
    """No archive matching the expected name pattern was found."""

    def __init__(self, directory: Path | str, pattern: str):
        self.directory = str(directory)
        self.pattern = pattern
        super().__init__(f"No archive matching {pattern} found under {directory}")


class ExtractionError(ArchiveError):
    """An archive could not be read or a requested entry is missing."""

    def __init__(self, archive: Path | str, reason: str, patterns: Sequence[str] = ()):
        self.archive = str(archive)
        self.reason = reason
        self.patterns = list(patterns)
        super().__init__(f"Cannot extract from {archive}: {reason}")


class ExternalToolFailure(MixedBuildError):
    """An external command exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, output: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        msg = f"Command failed with exit code {returncode} ({' '.join(self.command)})"
        if output:
            msg += f": {output}"
        super().__init__(msg)


class CompatibilityCheckError(ExternalToolFailure):
    """The VINTF compatibility check rejected the system/device combination."""

"""Command execution utilities for the external build tools."""

from __future__ import annotations

import shutil
import subprocess
from typing import Mapping, Optional, Sequence

from mixed_build.logging import get_logger

from .exceptions import ExternalToolFailure

log = get_logger(source=__name__)


def resolve_tool(name: str, env: Optional[Mapping[str, str]] = None) -> str:
    """Resolve a tool name against the PATH of ``env``.

    Falls back to the bare name so the failure surfaces from the command
    itself.
    """
    search_path = env.get("PATH") if env is not None else None
    return shutil.which(name, path=search_path) or name


def run_checked_command(
    command: Sequence[str],
    *,
    env: Optional[Mapping[str, str]] = None,
    input_text: Optional[str] = None,
    error_class: type[ExternalToolFailure] = ExternalToolFailure,
) -> str:
    """Run a command and raise ``error_class`` if it fails."""
    command = [str(part) for part in command]
    log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(
            command,
            input=input_text,
            text=True,
            capture_output=True,
            env=dict(env) if env is not None else None,
        )
    except OSError as error:
        raise error_class(command, 127, str(error)) from error
    if result.returncode != 0:
        stderr = result.stderr.strip()
        stdout = result.stdout.strip()
        message = stderr or stdout or "Command failed"
        log.debug(f"Command failed with code {result.returncode}: {message}")
        raise error_class(command, result.returncode, message)
    if result.stderr.strip():
        log.debug(f"stderr: {result.stderr.strip()}")
    return result.stdout


__all__ = [
    "resolve_tool",
    "run_checked_command",
]

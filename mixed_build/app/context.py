"""State shared between the pipeline stages of one run."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from mixed_build.domain.models import BuildArchives, BuildOptions, ScratchLayout


def _default_env() -> dict[str, str]:
    return dict(os.environ)


@dataclass
class BuildContext:
    """Options, archives and scratch space of a running mixed build.

    ``env`` is the environment handed to every external tool; staging the
    otatools archive extends its search paths.
    """

    options: BuildOptions
    archives: BuildArchives
    layout: ScratchLayout
    env: dict[str, str] = field(default_factory=_default_env)
    tools_staged: bool = False
    system_artifact_patterns: list[str] = field(default_factory=list)
    device_artifact_patterns: list[str] = field(default_factory=list)

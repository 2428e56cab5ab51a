from __future__ import annotations

import os
from dataclasses import dataclass

from mobrel.core.config import ReleaseConfig
from mobrel.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: ReleaseConfig
    console: ConsoleProtocol


def build_context() -> CLIContext:
    # The only place the process environment is read.
    return CLIContext(
        config=ReleaseConfig.from_env(os.environ),
        console=RichConsole(),
    )

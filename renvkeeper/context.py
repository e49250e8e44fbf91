"""
Shared context object for renvkeeper CLI commands.

This module defines the global Click context used to share configuration
and runtime options across CLI subcommands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from renvkeeper.config import RenvKeeperConfig, load_config


class RenvKeeperContext:
    """Global context object for renvkeeper CLI commands.

    An instance of this class is created once per CLI invocation and
    passed to commands using Click's context mechanism.

    Attributes:
        config_path: Path to the renvkeeper configuration file, if provided.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        config: Configuration loaded for the project being processed.
    """

    __slots__ = ("config_path", "verbose", "color", "config")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.config: Optional[RenvKeeperConfig] = None

    def load_config(self, project_dir: Path) -> RenvKeeperConfig:
        """Load (once) the configuration that applies to ``project_dir``."""
        if self.config is None:
            self.config = load_config(self.config_path, project_dir=project_dir)
        return self.config


#: Click decorator for injecting :class:`RenvKeeperContext` into commands.
pass_context = click.make_pass_decorator(RenvKeeperContext, ensure=True)

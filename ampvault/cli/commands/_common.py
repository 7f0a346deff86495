"""Shared CLI plumbing: engine construction and error reporting."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from ampvault.config import VaultConfig, config as default_config
from ampvault.core.errors import VaultError
from ampvault.core.ids import IdGenerator
from ampvault.core.versioning import VersioningEngine

console = Console()
err_console = Console(stderr=True)


@dataclass
class CliState:
    """Per-invocation settings collected by the root callback."""

    config: VaultConfig
    data_dir: Path

    def open_engine(self) -> VersioningEngine:
        return VersioningEngine(
            self.data_dir,
            ids=IdGenerator(self.config.id_seed),
            config=self.config,
        )


def state(ctx: typer.Context) -> CliState:
    obj = ctx.find_root().obj
    if not isinstance(obj, CliState):
        obj = CliState(config=default_config, data_dir=default_config.data_dir)
        ctx.find_root().obj = obj
    return obj


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Print store errors in red on stderr and exit with status 1."""
    try:
        yield
    except (VaultError, ValueError) as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1) from exc

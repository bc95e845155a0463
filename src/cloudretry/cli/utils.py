"""
CLI utility helpers: consoles and settings loading.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError
from rich.console import Console

from cloudretry.core.config import RetrySettings, get_settings

console = Console()
err_console = Console(stderr=True)


def load_settings(**overrides: object) -> RetrySettings:
    """Cached settings with non-None CLI overrides applied, validated again."""
    settings = get_settings()
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return settings
    try:
        return RetrySettings.model_validate({**settings.model_dump(), **changes})
    except ValidationError as e:
        err_console.print(f"[bold red]Invalid settings:[/bold red] {e}")
        raise typer.Exit(code=2) from e

"""Typer CLI for checking and rerouting tracks."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from track_router.cli import reroute_cmd

app = typer.Typer(help="Reroute predicted animal tracks around land barriers")
app.command("reroute")(reroute_cmd.reroute)
app.command("check")(reroute_cmd.check)


@app.command()
def info(
    config: Optional[Path] = typer.Option(None, help="YAML config to inspect"),
) -> None:
    """Show the active configuration."""
    from track_router.core.config import default_config_path, get_config

    cfg = get_config(config)
    source = config or default_config_path()
    typer.echo("=== Track Router Configuration ===")
    typer.echo(f"Config file: {source}{'' if source.exists() else ' (not found, using defaults)'}")
    params = cfg.reroute
    typer.echo(f"buffer_distance:       {params.buffer_distance}")
    typer.echo(f"max_buffer_expansions: {params.max_buffer_expansions}")
    typer.echo(f"buffer_growth_factor:  {params.buffer_growth_factor}")
    typer.echo(f"tie_break:             {params.tie_break.value}")
    typer.echo(f"max_workers:           {params.max_workers}")
    typer.echo(f"time_field:            {cfg.io.time_field}")
    typer.echo(f"id_field:              {cfg.io.id_field}")


if __name__ == "__main__":
    app()

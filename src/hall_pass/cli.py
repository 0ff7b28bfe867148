from __future__ import annotations

import logging

import click
from flask import Flask

from .common.datetime_utils import now_local
from .container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.cli.command("sweep-passes")
    @click.option(
        "--window",
        "window_minutes",
        type=int,
        default=None,
        help="Sweep classes whose period ended within this many minutes.",
    )
    def sweep_passes(window_minutes):
        """Close the pass queue of every auto-clear class whose period just ended."""
        if window_minutes is None:
            window_minutes = int(app.config["AUTO_CLEAR_WINDOW_MINUTES"])

        results = container.auto_clear_service.run_due(now=now_local(), window_minutes=window_minutes)
        for r in results:
            click.echo(f"class {r.class_id}: {r.returned} returned, {r.denied} denied")
        click.echo(f"{len(results)} class(es) swept")

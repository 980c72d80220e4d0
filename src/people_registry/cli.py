"""CLI entry point for the registry."""

from __future__ import annotations

import click

from .core.enums import JobKind


@click.group()
def main() -> None:
    """People Registry."""


@main.command()
@click.option("--config", default=None, help="Config file path")
@click.option("--host", default=None, help="Bind address override")
@click.option("--port", default=None, type=int, help="Port override")
def serve(config: str | None, host: str | None, port: int | None) -> None:
    """Serve the HTTP API."""
    from .main import run

    overrides: dict = {}
    if host:
        overrides.setdefault("api", {})["host"] = host
    if port:
        overrides.setdefault("api", {})["port"] = port

    run(config_path=config, overrides=overrides)


@main.command("simulate-job")
@click.argument("kind", type=click.Choice([k.value for k in JobKind]))
@click.option("--seed", default=None, type=int, help="Random seed for reproducible counts")
@click.option("--log-level", default="WARNING", help="Log level for listener output")
def simulate_job(kind: str, seed: int | None, log_level: str) -> None:
    """Run one simulated job against in-memory storage and print its event."""
    import asyncio
    import dataclasses
    import json

    from .main import simulate_job as run_job
    from .observability.logger import setup_logging

    setup_logging(level=log_level, format="console")
    result = asyncio.run(run_job(JobKind(kind), seed=seed))
    event = result.get_or_none()
    if event is None:
        raise click.ClickException(f"Job failed: {result!r}")
    payload = {"event_type": event.event_type, **dataclasses.asdict(event)}
    click.echo(json.dumps(payload, indent=2, default=str))


@main.command("events")
def list_events() -> None:
    """List registered domain event types by family."""
    from .domain.events import ALL_DOMAIN_EVENTS

    for event_cls in ALL_DOMAIN_EVENTS:
        click.echo(f"{event_cls.family().__name__:<18} {event_cls.event_type:<36} {event_cls.__name__}")


if __name__ == "__main__":
    main()

"""Lexora CLI: server, configuration, scheduling and catalog commands."""

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated

import typer

from lexora.application.config import resolve_config

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lexora: spaced-repetition review scheduling with daily word quotas.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

config_app = typer.Typer(help="Manage lexora configuration.")
app.add_typer(config_app, name="config")

schedule_app = typer.Typer(help="Inspect the review scheduler.", no_args_is_help=True)
app.add_typer(schedule_app, name="schedule")

catalog_app = typer.Typer(help="Word catalog tools.", no_args_is_help=True)
app.add_typer(catalog_app, name="catalog")

quota_app = typer.Typer(help="Daily quota inspection.", no_args_is_help=True)
app.add_typer(quota_app, name="quota")


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for lexora."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.getLogger("lexora").setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8777,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """[bold green]Serve[/bold green] the review API."""
    import uvicorn

    uvicorn.run("lexora.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


# ---------------------------------------------------------------------------
# Schedule subgroup
# ---------------------------------------------------------------------------


@schedule_app.command("simulate")
def schedule_simulate(
    ratings: Annotated[
        list[str], typer.Argument(help="Ratings in order: again, hard, good, easy.")
    ],
    gap: Annotated[
        str,
        typer.Option(help="'due' = answer each card when due; 'now' = answer back to back."),
    ] = "due",
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Replay a rating sequence on a fresh card and print each resulting state."""
    from lexora.application.scheduler import Scheduler, SchedulerSettings
    from lexora.domain.errors import InvalidRating
    from lexora.domain.models import DifficultyRating

    if gap not in ("due", "now"):
        typer.secho(f"Unknown --gap {gap!r}; use 'due' or 'now'.", fg="red")
        raise typer.Exit(2)

    try:
        parsed = [DifficultyRating.parse(r) for r in ratings]
    except InvalidRating as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(2) from None

    config = resolve_config()
    scheduler = Scheduler(SchedulerSettings.from_config(config))
    now = datetime(2000, 1, 1, tzinfo=timezone.utc)
    state = scheduler.new_card("card_simulated", "simulator", "word", now)

    steps = []
    for rating in parsed:
        state = scheduler.next(state, rating, now)
        steps.append(
            {
                "rating": rating.value,
                "queue_state": state.queue_state.value,
                "interval_days": round(state.interval_days, 4),
                "ease_factor": state.ease_factor,
                "lapses": state.lapses,
                "due_in_days": round((state.due_at - now).total_seconds() / 86400, 4),
            }
        )
        if gap == "due":
            now = state.due_at

    if json_output:
        typer.echo(json.dumps(steps, indent=2))
        return

    for i, step in enumerate(steps, 1):
        typer.echo(
            f"{i:>3}. {step['rating']:<5} -> {step['queue_state']:<9} "
            f"interval={step['interval_days']:g}d ease={step['ease_factor']:.2f} "
            f"lapses={step['lapses']}"
        )


# ---------------------------------------------------------------------------
# Catalog subgroup
# ---------------------------------------------------------------------------


@catalog_app.command("check")
def catalog_check(
    path: Annotated[Path, typer.Argument(help="Path to the YAML word catalog.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Validate a word catalog file."""
    import yaml  # type: ignore

    from lexora.infrastructure.adapters.catalog import validate_entries

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        entries, problems = [], [str(e)]
    else:
        entries, problems = validate_entries(raw)

    lemmas = {e.word.strip().lower() for e in entries}

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "ok": not problems,
                    "entries": len(entries),
                    "lemmas": len(lemmas),
                    "problems": problems,
                },
                indent=2,
            )
        )
    else:
        typer.echo(f"Entries: {len(entries)}  Lemmas: {len(lemmas)}")
        if problems:
            typer.secho(f"\nProblems: {len(problems)}", fg="red")
            for problem in problems:
                typer.echo(f"  {problem}")
        else:
            typer.secho("Problems: 0", fg="green")

    if problems:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Quota subgroup
# ---------------------------------------------------------------------------


@quota_app.command("show")
def quota_show(
    user_id: Annotated[str, typer.Argument(help="User to inspect.")],
):
    """Show today's quota snapshot for a user from the configured store."""
    from lexora.application.factory import build_quota_ledger, get_repositories

    config = resolve_config()
    _, ledger_repo = get_repositories(config)
    ledger = build_quota_ledger(config, ledger_repo)

    usage = asyncio.run(ledger.current_usage(user_id, datetime.now(timezone.utc)))
    typer.echo(json.dumps(usage.as_dict(), indent=2))

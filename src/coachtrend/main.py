from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from coachtrend.config import settings
from coachtrend.domain.models import DateRange, Event, ReducerKind, TrendOptions
from coachtrend.exceptions import InvalidInput, NoData
from coachtrend.logic.trends import TrendSeriesBuilder

cli = typer.Typer(help="Coachtrend CLI")


@cli.command()
def version() -> None:
    """Print runtime version."""
    typer.echo(f"{settings.app.name} {settings.app.version}")


@cli.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload for local development"),
) -> None:
    """Run the Coachtrend API server."""
    uvicorn.run(
        "coachtrend.api.main:app",
        host=host,
        port=port,
        reload=reload,
        app_dir="src",
    )


@cli.command()
def trend(
    events_file: Path = typer.Argument(..., exists=True, readable=True, help="JSON list of events"),
    reducer: ReducerKind = typer.Option(ReducerKind.AVERAGE_SCORE, help="Weekly reducer"),
    start: Optional[str] = typer.Option(None, help="First day (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, help="Last day, inclusive (YYYY-MM-DD)"),
    category: Optional[str] = typer.Option(None, help="Only events of this category"),
    zero_fill: bool = typer.Option(False, help="Emit 0 for empty weeks inside score series (rates keep gaps)"),
) -> None:
    """Build a weekly series from an events file and print it as JSON."""
    try:
        payload = json.loads(events_file.read_text(encoding="utf-8"))
        if not isinstance(payload, list):
            raise InvalidInput("Events file must contain a JSON list")
        events = [Event.model_validate(item) for item in payload]
        date_range = None
        if start or end:
            date_range = DateRange(
                start=date.fromisoformat(start) if start else None,
                end=date.fromisoformat(end) if end else None,
            )
        options = TrendOptions(reducer_kind=reducer, date_range=date_range, category_filter=category, zero_fill=zero_fill)
        series = TrendSeriesBuilder().build(events, options)
    except NoData as exc:
        typer.echo(json.dumps({"error": "no_data", "stage": exc.stage.value, "detail": str(exc)}), err=True)
        raise typer.Exit(code=2)
    except ValueError as exc:
        typer.echo(json.dumps({"error": "invalid_input", "detail": str(exc)}), err=True)
        raise typer.Exit(code=1)

    rows = [{"week": str(p.week_key), "value": p.value, "sample_count": p.sample_count} for p in series]
    typer.echo(json.dumps(rows, indent=2))


if __name__ == "__main__":
    cli()

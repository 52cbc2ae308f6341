"""
Tiered Backup CLI

Implements 2 CLI verbs with Operations facade integration:
- run: Dump the database and apply the daily/monthly/yearly backup lifecycle
- keys: Show the tier keys a run on a given date would target
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

import typer

from .cli_context import CLIContext
from .operations import Operations, OpsConfig, run_and_exit
from .operations.printers import print_run_outcome, print_tier_keys
from .rotation import RotationPolicy

app = typer.Typer(name="tiered-backup", help="Tiered database backup CLI")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _parse_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a YYYY-MM-DD date option.

    Raises:
        typer.BadParameter: If value is not a valid date
    """
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(f"Invalid date '{value}'. Use YYYY-MM-DD.")


@app.command()
def run(
    timeout: Optional[float] = typer.Option(None, "--timeout", min=1, help="Abort the run after this many seconds"),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed output and debug logs"),
) -> None:
    """Dump the database and store it in the daily/monthly/yearly tiers."""
    _configure_logging(verbose)

    def _run() -> None:
        context = CLIContext.from_env()
        ops = Operations(
            config=OpsConfig(timeout_s=timeout),
            settings=context.settings,
            store=context.store,
        )
        outcome = ops.run_backup()
        print_run_outcome(outcome, verbose=verbose)

    run_and_exit(_run)


@app.command()
def keys(
    on: Optional[str] = typer.Option(None, "--date", help="Date to compute keys for (YYYY-MM-DD, default today in UTC)"),
) -> None:
    """Show the tier keys a backup run would target."""
    day = _parse_date(on) or datetime.now(timezone.utc).date()
    print_tier_keys(day, [(tier.name, key) for tier, key in RotationPolicy().required_keys(day)])


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

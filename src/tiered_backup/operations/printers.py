"""
Human-readable output formatting.

Centralizes CLI output formatting so commands stay thin.
"""
from __future__ import annotations

from datetime import date
from typing import List, Tuple

import typer

from ..models import RunOutcome


def print_run_outcome(outcome: RunOutcome, verbose: bool = False) -> None:
    """
    Print the summary of a backup run.

    Args:
        outcome: Result of the run
        verbose: Also show fingerprint and compared key
    """
    typer.echo(f"Run date: {outcome.run_date.isoformat()}")
    typer.echo(f"Size: {_format_bytes(outcome.size_bytes)}")

    if verbose:
        typer.echo(f"Fingerprint: {outcome.fingerprint}")
        typer.echo(f"Compared with: {outcome.compared_key or '(no previous daily backup)'}")

    if outcome.skipped:
        typer.echo("Content unchanged, nothing uploaded")
    elif outcome.written_keys:
        typer.echo("Uploaded:")
        for key in outcome.written_keys:
            typer.echo(f"  {key}")

    if outcome.pruned_keys:
        typer.echo("Pruned:")
        for key in outcome.pruned_keys:
            typer.echo(f"  {key}")
    elif not outcome.pruning_ran:
        typer.echo("Pruning skipped")

    if outcome.warnings:
        typer.echo(f"Warnings ({len(outcome.warnings)}):")
        for warning in outcome.warnings:
            typer.echo(f"  {warning}")


def print_tier_keys(day: date, keys: List[Tuple[str, str]]) -> None:
    """Print the key of every tier for a date."""
    typer.echo(f"Keys for {day.isoformat()}:")
    for tier_name, key in keys:
        typer.echo(f"  {tier_name:<8} {key}")


def _format_bytes(size_bytes: int) -> str:
    """Format byte count as human-readable string."""
    size = float(size_bytes)
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size < 1024:
            return f"{size:.1f} {unit}" if unit != 'B' else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"

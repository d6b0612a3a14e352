"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
job progress lines, and job status summaries.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import AdvanceResult, Job


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_advance_result(result: AdvanceResult) -> None:
    """Print one compact line describing an `advance` outcome."""

    typer.echo(
        f"[advance] stage={result.stage} status={result.status} "
        f"progress={result.progress}% turns={result.completed_turns}/{result.total_turns}"
    )
    if result.message:
        typer.echo(f"Message: {result.message}")


def echo_job_summary(job: Job) -> None:
    """Print job status and chapter spans."""

    typer.echo(f"Job: {job.job_id}")
    typer.echo(f"Status: {job.status} ({job.progress}%)")
    if job.message:
        typer.echo(f"Message: {job.message}")
    if job.title:
        typer.echo(f"Title: {job.title}")
    typer.echo(f"Language: {job.language}")
    typer.echo(f"Turns with audio: {job.completed_turns}/{len(job.turns)}")
    if job.status == "ready":
        typer.echo(f"Duration: {job.duration:.0f} s")
    if job.predicted_questions:
        typer.echo(f"Listener questions: {len(job.predicted_questions)}")
    for index, chapter in enumerate(job.chapters, start=1):
        typer.echo(
            f"{index}. {chapter.title} [{chapter.start_time:.1f}s - {chapter.end_time:.1f}s]"
        )

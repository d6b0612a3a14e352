"""Command-line interface for Podvoice.

Responsibilities:
- Expose user-facing commands for job creation, advancing, and export.
- Convert CLI arguments into `PodvoiceConfig` and pipeline calls.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer

from .audio.merger import ProgramMerger
from .cli_rendering import echo_advance_result, echo_job_summary, exit_with_command_error
from .cli_runtime import resolve_provider_runtime_sources
from .config import ConfigLoader, PodvoiceConfig, RuntimeConfigSources, normalize_optional_string
from .credentials import PROVIDER_ACCOUNTS, create_credential_store
from .errors import PipelineStageError
from .models.datatypes import GenerationRequest
from .pipeline import PodcastPipeline
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="podvoice",
    no_args_is_help=True,
    help="Podvoice CLI: turn documents into a narrated multi-speaker podcast.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file."),
]
WorkspaceOption = Annotated[
    Path | None,
    typer.Option("--workspace", help="Workspace directory (overrides config)."),
]
ProviderTtsOption = Annotated[
    str | None,
    typer.Option("--provider-tts", help="Speech provider id (`gemini` or `openai`)."),
]
TranscriptionModeOption = Annotated[
    str | None,
    typer.Option("--transcription-mode", help="`vision` (page images) or `text-layer` (PDF text)."),
]
ModelTtsOption = Annotated[
    str | None,
    typer.Option("--model-tts", help="Speech model id override."),
]


class StageProgressIndicator:
    """Render deterministic per-stage progress lines for long-running commands."""

    _SPINNER_FRAMES = "|/-\\"

    def __init__(self, command_name: str) -> None:
        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Print one progress line for a stage start transition."""

        spinner = self._SPINNER_FRAMES[(stage_index - 1) % len(self._SPINNER_FRAMES)]
        typer.echo(
            f"[progress] command={self._command_name} "
            f"{spinner} {stage_index}/{stage_total} stage={stage_name}"
        )


def _load_yaml_config(config_path: Path | None) -> PodvoiceConfig | None:
    """Load a YAML config file when requested and map failures to stage errors."""

    if config_path is None:
        return None

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except Exception as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to load config file `{config_path}`: {exc}",
            hint="Verify YAML syntax and file permissions.",
        ) from exc


def _resolve_command_config(
    config_file: Path | None,
    workspace: Path | None,
    provider_tts: str | None = None,
    transcription_mode: str | None = None,
    model_tts: str | None = None,
) -> PodvoiceConfig:
    """Resolve effective command config from YAML or env plus CLI overrides."""

    config = _load_yaml_config(config_file)
    if config is None:
        try:
            config = ConfigLoader.from_env()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=f"Invalid environment configuration: {exc}",
                hint="Fix the `PODVOICE_*` environment variables and rerun.",
            ) from exc
    if workspace is not None:
        config = replace(config, workspace_dir=workspace)

    runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
        provider_tts=provider_tts,
        transcription_mode=transcription_mode,
        model_tts=model_tts,
    )
    return replace(
        config,
        runtime_sources=RuntimeConfigSources(
            cli=runtime_cli_values,
            secure=runtime_secure_values,
            env=config.runtime_sources.env,
        ),
    )


def _pipeline(config: PodvoiceConfig, command_name: str) -> PodcastPipeline:
    progress = StageProgressIndicator(command_name=command_name)
    return PodcastPipeline(
        config,
        run_logger=RunLogger(),
        stage_progress_callback=progress.on_stage_start,
    )


@app.command("create")
def create_command(
    job_id: Annotated[str, typer.Argument(help="New job identifier.")],
    docs: Annotated[
        list[Path],
        typer.Option("--doc", help="Source PDF, page image, or directory of page images."),
    ],
    duration: Annotated[
        int, typer.Option("--duration", min=1, help="Target program length in minutes.")
    ] = 15,
    style: Annotated[
        str, typer.Option("--style", help="Conversation style (educational, conversational, ...).")
    ] = "educational",
    language: Annotated[
        str, typer.Option("--language", help="Language code, or `auto` to detect it.")
    ] = "auto",
    prompt: Annotated[
        str | None, typer.Option("--prompt", help="Free-form steering instructions.")
    ] = None,
    owner: Annotated[str, typer.Option("--owner", help="Owner identifier.")] = "local",
    config_file: ConfigOption = None,
    workspace: WorkspaceOption = None,
) -> None:
    """Create a job from source documents and a generation request."""

    try:
        config = _resolve_command_config(config_file, workspace)
        request = GenerationRequest(
            target_duration_minutes=duration,
            style=style.strip() or "educational",
            language=(normalize_optional_string(language) or "auto").lower(),
            user_prompt=normalize_optional_string(prompt),
        )
        job = _pipeline(config, "create").create_job(job_id, docs, request, owner_id=owner)
    except Exception as exc:
        exit_with_command_error("create", exc)

    typer.echo(f"Created job: {job.job_id}")
    typer.echo(f"Workspace: {config.workspace_dir}")


@app.command("advance")
def advance_command(
    job_id: Annotated[str, typer.Argument(help="Job identifier.")],
    config_file: ConfigOption = None,
    workspace: WorkspaceOption = None,
    provider_tts: ProviderTtsOption = None,
    transcription_mode: TranscriptionModeOption = None,
    model_tts: ModelTtsOption = None,
) -> None:
    """Perform one bounded slice of work for a job."""

    try:
        config = _resolve_command_config(
            config_file, workspace, provider_tts, transcription_mode, model_tts
        )
        result = _pipeline(config, "advance").advance(job_id)
    except Exception as exc:
        exit_with_command_error("advance", exc)

    echo_advance_result(result)


@app.command("run")
def run_command(
    job_id: Annotated[str, typer.Argument(help="Job identifier.")],
    max_steps: Annotated[
        int, typer.Option("--max-steps", min=1, help="Maximum `advance` invocations.")
    ] = 50,
    config_file: ConfigOption = None,
    workspace: WorkspaceOption = None,
    provider_tts: ProviderTtsOption = None,
    transcription_mode: TranscriptionModeOption = None,
    model_tts: ModelTtsOption = None,
) -> None:
    """Advance a job repeatedly until it is ready or the step limit is reached."""

    try:
        config = _resolve_command_config(
            config_file, workspace, provider_tts, transcription_mode, model_tts
        )
        pipeline = _pipeline(config, "run")
        result = None
        for _ in range(max_steps):
            result = pipeline.advance(job_id)
            echo_advance_result(result)
            if result.done:
                break
    except Exception as exc:
        exit_with_command_error("run", exc)

    if result is not None and not result.done:
        typer.echo(f"Stopped after {max_steps} step(s); run again to continue.")


@app.command("status")
def status_command(
    job_id: Annotated[str, typer.Argument(help="Job identifier.")],
    config_file: ConfigOption = None,
    workspace: WorkspaceOption = None,
) -> None:
    """Show job status, progress, and chapter spans."""

    try:
        config = _resolve_command_config(config_file, workspace)
        pipeline = PodcastPipeline(config)
        job = pipeline.job_store.get(job_id)
        result = pipeline.status(job_id)
    except Exception as exc:
        exit_with_command_error("status", exc)

    echo_job_summary(job)
    typer.echo(f"Next stage: {result.stage}")


@app.command("export")
def export_command(
    job_id: Annotated[str, typer.Argument(help="Job identifier.")],
    out: Annotated[Path, typer.Option("--out", help="Output WAV path.")],
    config_file: ConfigOption = None,
    workspace: WorkspaceOption = None,
) -> None:
    """Merge the clips of a ready job into one WAV program."""

    try:
        config = _resolve_command_config(config_file, workspace)
        pipeline = PodcastPipeline(config)
        job = pipeline.job_store.get(job_id)
        if job.status != "ready":
            raise PipelineStageError(
                stage="export",
                detail=f"Job `{job_id}` is not ready (status: {job.status}).",
                hint="Run `podvoice run` until the job is ready.",
            )
        output_path = ProgramMerger(pipeline.blob_store.read).merge(job.turns, out)
    except Exception as exc:
        exit_with_command_error("export", exc)

    typer.echo(f"Program audio: {output_path}")
    typer.echo(f"Duration: {job.duration:.0f} s")


@app.command("credentials")
def credentials_command(
    provider: Annotated[
        str, typer.Option("--provider", help="Credential provider (`openai` or `gemini`).")
    ] = "openai",
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage securely stored provider API keys."""

    if provider not in PROVIDER_ACCOUNTS:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail=f"Unsupported provider `{provider}`.",
                hint=f"Use one of: {', '.join(sorted(PROVIDER_ACCOUNTS))}.",
            ),
        )
    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                f"{provider} API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key, provider)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo(f"{provider} API key stored in secure credential storage.")
        return

    if clear_api_key:
        removed = credential_store.clear_api_key(provider)
        if removed:
            typer.echo(f"Stored {provider} API key cleared from secure credential storage.")
        else:
            typer.echo(f"No stored {provider} API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    typer.echo(f"Secure credential storage: {availability}")
    for name in sorted(PROVIDER_ACCOUNTS):
        status = "present" if credential_store.get_api_key(name) is not None else "not set"
        typer.echo(f"Stored {name} API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()

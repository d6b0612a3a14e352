"""Runtime configuration helpers for the Podvoice pipeline.

Responsibilities:
- Validate pipeline configuration before execution.
- Resolve provider runtime values with precedence rules.
"""

from __future__ import annotations

import os

from ..config import PodvoiceConfig, ProviderRuntimeConfig, RuntimeConfigSources
from ..errors import PipelineStageError


class PipelineRuntimeMixin:
    """Provide runtime/config helper methods for pipeline orchestration."""

    def _validate_config(self, config: PodvoiceConfig) -> None:
        """Validate top-level configuration and map failures to stage-aware error."""

        try:
            config.validate()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint="Update provider/model options in the config file and rerun the command.",
            ) from exc

    def _resolve_runtime_config(self, config: PodvoiceConfig) -> ProviderRuntimeConfig:
        """Resolve runtime provider settings with deterministic source precedence."""

        try:
            env_source = config.runtime_sources.env or os.environ
            runtime_sources = RuntimeConfigSources(
                cli=config.runtime_sources.cli,
                secure=config.runtime_sources.secure,
                env=env_source,
            )
            return config.resolved_provider_runtime(runtime_sources)
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint=(
                    "Set supported provider IDs and non-empty model values in "
                    "CLI, secure storage, environment, or config defaults."
                ),
            ) from exc

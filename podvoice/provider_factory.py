"""Provider factory helpers for transcription, analysis, drafting, and speech.

Responsibilities:
- Resolve provider identifiers to concrete stage implementations.
- Keep orchestration independent from concrete provider class construction.

Notes:
- LLM stages are implemented for `openai`; speech for `gemini` and `openai`.
- Factory mappings are explicit so adding a provider is a local change.
"""

from __future__ import annotations

from .config import PodvoiceConfig, ProviderRuntimeConfig
from .llm.drafter import OpenAIScriptDrafter, ScriptDrafter
from .llm.extractor import KnowledgeExtractor, OpenAIKnowledgeExtractor
from .llm.transcriber import OpenAIVisionTranscriber, PageTranscriber, PdfTextLayerTranscriber
from .tts.synthesizer import GeminiSynthesizer, OpenAISynthesizer, Synthesizer


class ProviderFactory:
    """Factory for provider-backed stage clients used by the pipeline."""

    @staticmethod
    def create_transcriber(
        runtime: ProviderRuntimeConfig,
        config: PodvoiceConfig,
    ) -> PageTranscriber:
        """Create a page transcriber for the configured transcription mode."""

        if runtime.transcription_mode == "text-layer":
            return PdfTextLayerTranscriber()
        if runtime.llm_provider == "openai":
            return OpenAIVisionTranscriber(
                model=runtime.transcribe_model,
                api_key=runtime.openai_api_key,
                timeout_seconds=config.request_timeout_seconds,
                max_retries=config.max_retries,
            )
        raise ValueError(f"Unsupported transcription provider `{runtime.llm_provider}`.")

    @staticmethod
    def create_extractor(
        runtime: ProviderRuntimeConfig,
        config: PodvoiceConfig,
    ) -> KnowledgeExtractor:
        """Create a knowledge extractor for a configured provider identifier."""

        if runtime.llm_provider == "openai":
            return OpenAIKnowledgeExtractor(
                model=runtime.extract_model,
                api_key=runtime.openai_api_key,
                timeout_seconds=config.request_timeout_seconds,
                max_retries=config.max_retries,
            )
        raise ValueError(f"Unsupported extraction provider `{runtime.llm_provider}`.")

    @staticmethod
    def create_drafter(
        runtime: ProviderRuntimeConfig,
        config: PodvoiceConfig,
    ) -> ScriptDrafter:
        """Create a script drafter for a configured provider identifier."""

        if runtime.llm_provider == "openai":
            return OpenAIScriptDrafter(
                model=runtime.script_model,
                api_key=runtime.openai_api_key,
                timeout_seconds=config.request_timeout_seconds,
                max_retries=config.max_retries,
                question_count=config.predicted_question_count,
            )
        raise ValueError(f"Unsupported drafting provider `{runtime.llm_provider}`.")

    @staticmethod
    def create_synthesizer(
        runtime: ProviderRuntimeConfig,
        config: PodvoiceConfig,
    ) -> Synthesizer:
        """Create a speech synthesizer for a configured provider identifier."""

        if runtime.tts_provider == "gemini":
            return GeminiSynthesizer(
                model=runtime.tts_model,
                api_key=runtime.gemini_api_key,
                timeout_seconds=config.request_timeout_seconds,
                max_retries=config.max_retries,
            )
        if runtime.tts_provider == "openai":
            return OpenAISynthesizer(
                model=runtime.tts_model,
                api_key=runtime.openai_api_key,
                timeout_seconds=config.request_timeout_seconds,
                max_retries=config.max_retries,
                speaking_rate=config.speaking_rate,
            )
        raise ValueError(f"Unsupported TTS provider `{runtime.tts_provider}`.")

"""LLM-facing abstractions for transcription, extraction, and drafting.

This package defines prompt libraries, provider clients, and the stage
interfaces used before speech synthesis.
"""

from .drafter import OpenAIScriptDrafter, ScriptDrafter
from .extractor import KnowledgeExtractor, OpenAIKnowledgeExtractor
from .openai_client import OpenAIChatClient, OpenAISpeechClient
from .pacing import RateLimiter, RetryPolicy
from .prompts import PromptLibrary
from .provider_http import ProviderError
from .transcriber import OpenAIVisionTranscriber, PageTranscriber, PdfTextLayerTranscriber

__all__ = [
    "PromptLibrary",
    "PageTranscriber",
    "OpenAIVisionTranscriber",
    "PdfTextLayerTranscriber",
    "KnowledgeExtractor",
    "OpenAIKnowledgeExtractor",
    "ScriptDrafter",
    "OpenAIScriptDrafter",
    "OpenAIChatClient",
    "OpenAISpeechClient",
    "ProviderError",
    "RateLimiter",
    "RetryPolicy",
]

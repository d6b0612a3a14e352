"""Text-to-speech provider abstractions.

This package contains voice profile types and synthesizer interfaces used by the
pipeline audio stage.
"""

from .synthesizer import GeminiSynthesizer, OpenAISynthesizer, Synthesizer
from .voices import VoiceProfile, voice_cast

__all__ = ["VoiceProfile", "voice_cast", "Synthesizer", "GeminiSynthesizer", "OpenAISynthesizer"]

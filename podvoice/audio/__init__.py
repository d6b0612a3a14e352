"""Audio buffer handling and program export components.

This package wraps raw PCM into WAV clips, splits dialogue buffers per turn,
and merges ready clips into one program file.
"""

from .merger import ProgramMerger
from .pcm import PcmSplitter, read_wav, wrap_wav

__all__ = ["PcmSplitter", "ProgramMerger", "read_wav", "wrap_wav"]

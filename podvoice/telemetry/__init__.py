"""Run-event logging for deterministic, grep-friendly pipeline diagnostics."""

from .logger import RunLogger

__all__ = ["RunLogger"]

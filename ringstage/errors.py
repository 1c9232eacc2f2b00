"""Error types raised by the decode → segment → classify pipeline."""

from __future__ import annotations


class RingStageError(Exception):
    """Base class for every error this package raises."""


class DecodeError(RingStageError, ValueError):
    """Raised when a WAV buffer cannot be turned into samples."""


class TruncatedAudioError(DecodeError):
    """Raised when the buffer is shorter than the WAV header."""


class UnsupportedFormatError(DecodeError):
    """Raised when header fields describe audio we cannot decode."""


class UnreadableAudioError(DecodeError, OSError):
    """Raised when the audio file cannot be read from disk."""


class ConfigError(RingStageError, ValueError):
    """Raised when segmentation parameters are out of range."""


class InvalidRateError(ConfigError):
    """Raised when the sample rate or derived window size is not positive."""

"""Mono PCM WAV decoding into normalized float samples.

The container is read with a fixed canonical layout rather than by
walking RIFF chunks:

    bytes 20-21  audio format      (unused)
    bytes 22-23  channel count     int16, must be 1
    bytes 24-27  sample rate       int32
    bytes 34-35  bits per sample   int16
    bytes 44-    PCM payload       little-endian signed integers

Each sample is the raw integer divided by ``2 ** (bits - 1)``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from ringstage.errors import (
    TruncatedAudioError,
    UnreadableAudioError,
    UnsupportedFormatError,
)


HEADER_SIZE = 44
CHANNELS_OFFSET = 22
SAMPLE_RATE_OFFSET = 24
BITS_PER_SAMPLE_OFFSET = 34

_NUMPY_DTYPES = {2: "<i2", 4: "<i4"}
SUPPORTED_BITS = (16, 24, 32)


@dataclass(frozen=True)
class SampleBuffer:
    """Decoded audio: read-only float64 samples in [-1, 1] plus rate."""
    samples: np.ndarray
    sample_rate: int

    @property
    def duration_sec(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate

    def segment_samples(self, segment) -> np.ndarray:
        """Return a read-only view of the samples covered by *segment*."""
        return self.samples[segment.start_index:segment.end_index]


def read_all_bytes(path: str | Path) -> bytes:
    """Read the whole file, wrapping any OS failure as UnreadableAudioError."""
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise UnreadableAudioError(
            f"failed to read audio file {path}: {e}"
        ) from e


def decode(raw: bytes, legacy_header_skip: bool = False) -> SampleBuffer:
    """Decode a mono PCM WAV byte buffer into a SampleBuffer.

    With *legacy_header_skip* the sample count is computed the way older
    releases did: samples were read from byte 0 for
    ``(len(raw) - 44) // bytes_per_sample`` positions and the first
    ``44 // bytes_per_sample`` of those were dropped afterwards, so the
    last ``44 // bytes_per_sample`` payload samples never appear.  The
    default skips the header once and keeps the full payload.
    """
    if len(raw) < HEADER_SIZE:
        raise TruncatedAudioError(
            f"buffer is {len(raw)} bytes, shorter than the "
            f"{HEADER_SIZE}-byte WAV header"
        )
    if raw[0:4] != b"RIFF" or raw[8:12] != b"WAVE":
        raise UnsupportedFormatError("missing RIFF/WAVE signature")

    (channels,) = struct.unpack_from("<h", raw, CHANNELS_OFFSET)
    (sample_rate,) = struct.unpack_from("<i", raw, SAMPLE_RATE_OFFSET)
    (bits_per_sample,) = struct.unpack_from("<h", raw, BITS_PER_SAMPLE_OFFSET)

    if bits_per_sample <= 0:
        raise UnsupportedFormatError(
            f"bits per sample must be positive, got {bits_per_sample}"
        )
    if bits_per_sample not in SUPPORTED_BITS:
        raise UnsupportedFormatError(
            f"unsupported sample width: {bits_per_sample} bits "
            f"(supported: {', '.join(str(b) for b in SUPPORTED_BITS)})"
        )
    if channels != 1:
        raise UnsupportedFormatError(
            f"expected mono audio, header declares {channels} channels"
        )

    bytes_per_sample = bits_per_sample // 8
    max_sample_value = float(2 ** (bits_per_sample - 1))

    count = (len(raw) - HEADER_SIZE) // bytes_per_sample
    if legacy_header_skip:
        skip = HEADER_SIZE // bytes_per_sample
        start = skip * bytes_per_sample
        count = max(count - skip, 0)
    else:
        start = HEADER_SIZE

    payload = raw[start:start + count * bytes_per_sample]
    ints = _pcm_to_int(payload, bytes_per_sample)
    samples = ints.astype(np.float64) / max_sample_value
    samples.setflags(write=False)
    return SampleBuffer(samples=samples, sample_rate=int(sample_rate))


def load_buffer(path: str | Path, legacy_header_skip: bool = False) -> SampleBuffer:
    """Read and decode a WAV file in one step."""
    return decode(read_all_bytes(path), legacy_header_skip=legacy_header_skip)


def _pcm_to_int(payload: bytes, bytes_per_sample: int) -> np.ndarray:
    if bytes_per_sample in _NUMPY_DTYPES:
        return np.frombuffer(payload, dtype=_NUMPY_DTYPES[bytes_per_sample])

    # 24-bit: assemble little-endian triplets and sign-extend
    triplets = np.frombuffer(payload, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
    values = triplets[:, 0] | (triplets[:, 1] << 8) | (triplets[:, 2] << 16)
    return np.where(values >= 1 << 23, values - (1 << 24), values)

"""Silence-tolerant segmentation of a decoded recording.

The buffer is cut into consecutive ``window_size`` windows, each judged
active or inactive by RMS energy.  An explicit two-phase state machine
then turns that boolean stream into segments:

    * a single active window followed by silence is treated as a click
      and discarded;
    * up to ``max_silence_windows`` inactive windows inside a segment
      are tolerated, so short pauses do not split it;
    * one more inactive window closes the segment, whose end is rolled
      back to where the silence run started.

``advance()`` is the pure transition function; ``extract_segments()``
drives it over a whole ``SampleBuffer``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from ringstage.config import SegmentationConfig
from ringstage.decoder import SampleBuffer
from ringstage.diagnostics import DiagnosticEvent, DiagnosticSink, EventKind, NullSink
from ringstage.errors import ConfigError, InvalidRateError
from ringstage.vad import window_activity


@dataclass(frozen=True)
class RawSegment:
    """Half-open ``[start_index, end_index)`` range into a SampleBuffer."""
    start_index: int
    end_index: int

    @property
    def sample_count(self) -> int:
        return self.end_index - self.start_index

    def duration(self, sample_rate: int) -> float:
        return self.sample_count / sample_rate


class Phase(Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass(frozen=True)
class ExtractorState:
    phase: Phase = Phase.IDLE
    start_index: int = 0
    active_windows: int = 0
    silence_windows: int = 0


IDLE = ExtractorState()


def compute_window_size(sample_rate: int, min_voice_activity_period: float) -> int:
    """Samples per RMS window; raises InvalidRateError if not positive."""
    if sample_rate <= 0:
        raise InvalidRateError(f"sample rate must be positive, got {sample_rate}")
    if min_voice_activity_period <= 0:
        raise ConfigError(
            "min_voice_activity_period must be positive, "
            f"got {min_voice_activity_period}"
        )
    window_size = int(round(sample_rate * min_voice_activity_period))
    if window_size <= 0:
        raise InvalidRateError(
            f"window size is {window_size} samples for rate {sample_rate} Hz "
            f"and period {min_voice_activity_period} s"
        )
    return window_size


def compute_max_silence_windows(
    min_voice_activity_period: float,
    min_silence_duration_between_segments: float,
) -> int:
    """Number of inactive windows a segment may contain before it closes."""
    if min_silence_duration_between_segments < 0:
        raise ConfigError(
            "min_silence_duration_between_segments must not be negative, "
            f"got {min_silence_duration_between_segments}"
        )
    return int((1 / min_voice_activity_period) * min_silence_duration_between_segments)


def advance(
    state: ExtractorState,
    window_start: int,
    active: bool,
    window_size: int,
    max_silence_windows: int,
) -> Tuple[ExtractorState, Optional[RawSegment]]:
    """Consume one window and return the next state plus any closed segment."""
    if active:
        if state.phase is Phase.IDLE:
            return ExtractorState(Phase.ACTIVE, window_start, 1, 0), None
        return replace(
            state, active_windows=state.active_windows + 1, silence_windows=0
        ), None

    if state.phase is Phase.IDLE:
        return state, None

    silence = state.silence_windows + 1
    if state.active_windows <= 1:
        return IDLE, None
    if silence > max_silence_windows:
        stop = window_start - max_silence_windows * window_size
        return IDLE, RawSegment(state.start_index, stop)
    return replace(state, silence_windows=silence), None


def finish(
    state: ExtractorState,
    end_offset: int,
    window_size: int,
) -> Optional[RawSegment]:
    """Close a segment still open after the last window, if it qualifies.

    *end_offset* is the index just past the last visited window.  The
    trailing silence run is excluded from the segment.
    """
    if state.phase is not Phase.ACTIVE or state.active_windows <= 1:
        return None
    stop = end_offset - state.silence_windows * window_size
    return RawSegment(state.start_index, stop)


def extract_segments(
    buffer: SampleBuffer,
    config: SegmentationConfig | None = None,
    sink: DiagnosticSink | None = None,
) -> List[RawSegment]:
    """Return the activity segments of *buffer* in increasing order."""
    config = config or SegmentationConfig()
    sink = sink or NullSink()

    period = config.min_voice_activity_period
    window_size = compute_window_size(buffer.sample_rate, period)
    max_silence = compute_max_silence_windows(
        period, config.min_silence_duration_between_segments
    )

    # Windows are visited while start + size < len; the last full
    # window touching the buffer end is never examined.
    window_count = max((len(buffer.samples) - 1) // window_size, 0)
    activity = window_activity(
        buffer.samples, window_size, window_count, config.signal_low_level_limit
    )

    segments: List[RawSegment] = []
    state = IDLE
    for k, active in enumerate(activity):
        state, segment = advance(
            state, k * window_size, bool(active), window_size, max_silence
        )
        if segment is not None:
            _record(segment, buffer.sample_rate, segments, sink)

    if config.flush_open_segment:
        tail = finish(state, window_count * window_size, window_size)
        if tail is not None:
            _record(tail, buffer.sample_rate, segments, sink)

    sink.emit(DiagnosticEvent(
        EventKind.SEGMENTS_EXTRACTED,
        f"extracted {len(segments)} segments",
        {"count": len(segments), "window_size": window_size},
    ))
    return segments


def _record(
    segment: RawSegment,
    sample_rate: int,
    segments: List[RawSegment],
    sink: DiagnosticSink,
) -> None:
    segments.append(segment)
    duration = segment.duration(sample_rate)
    sink.emit(DiagnosticEvent(
        EventKind.SEGMENT_DETECTED,
        f"detected segment with duration {duration:.3f} s",
        {
            "start_index": segment.start_index,
            "end_index": segment.end_index,
            "duration_sec": duration,
        },
    ))

"""Duration → call-stage label classification.

Each stage has a nominal length in whole seconds; a segment belongs to
the first stage whose nominal length plus ``tolerance`` is at least the
segment's duration.  Anything up to ``RING_TONE_MAX_SEC`` is a ring
tone: reported, but not counted as a stage.  Segments longer than the
last stage bound receive no label.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ringstage.diagnostics import DiagnosticEvent, DiagnosticSink, EventKind, NullSink
from ringstage.errors import ConfigError
from ringstage.segmenter import RawSegment


RING_TONE = "ring tone"
RING_TONE_MAX_SEC = 2.0
TOLERANCE_SEC = 0.5

STAGE_LENGTHS: Tuple[Tuple[int, str], ...] = (
    (3, "A1"),
    (4, "A1_SOD"),
    (5, "A2"),
    (6, "A2_SOD"),
    (7, "C1"),
    (8, "C1_SOD"),
    (9, "C2"),
    (10, "C2_SOD"),
    (11, "SV1"),
    (12, "SV1_SOD"),
    (13, "SV2"),
    (14, "SV2_SOD"),
    (15, "A3"),
    (16, "A3_SOD"),
)

StageTable = Tuple[Tuple[float, str], ...]


def build_stage_table(tolerance: float = TOLERANCE_SEC) -> StageTable:
    """Return ascending ``(upper_bound_sec, label)`` pairs, ring tone first."""
    table = [(RING_TONE_MAX_SEC, RING_TONE)]
    table.extend((seconds + tolerance, label) for seconds, label in STAGE_LENGTHS)
    bounds = [b for b, _ in table]
    if bounds != sorted(bounds):
        raise ConfigError(f"tolerance {tolerance} produces a non-ascending table")
    return tuple(table)


STAGE_TABLE = build_stage_table()


@dataclass(frozen=True)
class ClassifiedSegment:
    label: str
    duration: float
    segment: RawSegment

    @property
    def is_ring_tone(self) -> bool:
        return self.label == RING_TONE


def lookup_label(duration: float, table: StageTable = STAGE_TABLE) -> Optional[str]:
    """Return the label of the first bound ``>= duration``, or None."""
    idx = bisect_left([bound for bound, _ in table], duration)
    if idx == len(table):
        return None
    return table[idx][1]


def classify(
    segments: Sequence[RawSegment],
    sample_rate: int,
    table: StageTable = STAGE_TABLE,
    sink: DiagnosticSink | None = None,
) -> List[ClassifiedSegment]:
    """Label each segment in order; over-long segments are left out."""
    sink = sink or NullSink()
    classified: List[ClassifiedSegment] = []

    for segment in segments:
        duration = segment.duration(sample_rate)
        sink.emit(DiagnosticEvent(
            EventKind.DURATION_COMPUTED,
            f"duration is {duration:.3f} s",
            {"start_index": segment.start_index, "duration_sec": duration},
        ))

        label = lookup_label(duration, table)
        if label is None:
            sink.emit(DiagnosticEvent(
                EventKind.SEGMENT_UNCLASSIFIED,
                f"no stage for segment of {duration:.3f} s "
                f"(longest stage ends at {table[-1][0]} s)",
                {"start_index": segment.start_index, "duration_sec": duration},
            ))
            continue

        if label == RING_TONE:
            sink.emit(DiagnosticEvent(
                EventKind.RING_TONE_DETECTED,
                f"ring tone detected, duration {duration:.3f} s",
                {"start_index": segment.start_index, "duration_sec": duration},
            ))
        classified.append(ClassifiedSegment(label, duration, segment))

    return classified


def stage_labels(classified: Sequence[ClassifiedSegment]) -> List[str]:
    """Labels of the call-stage segments, ring tones excluded."""
    return [c.label for c in classified if not c.is_ring_tone]


def to_output(classified: Sequence[ClassifiedSegment]) -> List[str]:
    """Stage labels followed by their count as a string."""
    labels = stage_labels(classified)
    return labels + [str(len(labels))]

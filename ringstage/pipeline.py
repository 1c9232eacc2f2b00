"""Decode → extract → classify, producing the final call-stage list."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from ringstage.classifier import (
    ClassifiedSegment,
    StageTable,
    build_stage_table,
    classify,
    stage_labels,
)
from ringstage.config import AppConfig
from ringstage.decoder import SampleBuffer, decode, read_all_bytes
from ringstage.diagnostics import DiagnosticEvent, DiagnosticSink, EventKind, NullSink
from ringstage.errors import DecodeError
from ringstage.segmenter import RawSegment, extract_segments


@dataclass(frozen=True)
class PipelineResult:
    sample_rate: int
    segments: List[RawSegment]
    classified: List[ClassifiedSegment]

    @property
    def labels(self) -> List[str]:
        return stage_labels(self.classified)

    @property
    def count(self) -> int:
        return len(self.labels)

    def to_output(self) -> List[str]:
        """Stage labels plus a trailing count, e.g. ``["A1_SOD", "C1", "2"]``."""
        return self.labels + [str(self.count)]


def detect_call_stages(
    raw: bytes,
    config: AppConfig | None = None,
    sink: DiagnosticSink | None = None,
) -> PipelineResult:
    """Run the whole pipeline over an in-memory WAV buffer."""
    config = config or AppConfig()
    sink = sink or NullSink()
    table = build_stage_table(config.classifier.tolerance_sec)

    try:
        buffer = decode(raw, legacy_header_skip=config.decoder.legacy_header_skip)
    except DecodeError as e:
        _report_decode_failure(e, sink)
        raise

    return run_on_buffer(buffer, config, sink, table)


def detect_call_stages_from_file(
    path: str | Path,
    config: AppConfig | None = None,
    sink: DiagnosticSink | None = None,
) -> PipelineResult:
    """Read *path* fully, then run :func:`detect_call_stages` on its bytes."""
    sink = sink or NullSink()
    try:
        raw = read_all_bytes(path)
    except DecodeError as e:
        _report_decode_failure(e, sink)
        raise
    return detect_call_stages(raw, config, sink)


def run_on_buffer(
    buffer: SampleBuffer,
    config: AppConfig | None = None,
    sink: DiagnosticSink | None = None,
    table: StageTable | None = None,
) -> PipelineResult:
    """Segment and classify an already decoded buffer."""
    config = config or AppConfig()
    sink = sink or NullSink()
    if table is None:
        table = build_stage_table(config.classifier.tolerance_sec)

    segments = extract_segments(buffer, config.segmentation, sink)
    classified = classify(segments, buffer.sample_rate, table, sink)
    return PipelineResult(
        sample_rate=buffer.sample_rate,
        segments=segments,
        classified=classified,
    )


def _report_decode_failure(error: DecodeError, sink: DiagnosticSink) -> None:
    sink.emit(DiagnosticEvent(
        EventKind.DECODE_FAILURE,
        f"failed to get samples: {error}",
        {"error_type": type(error).__name__},
    ))

"""End-to-end tests: WAV bytes → segments → call-stage labels."""

from __future__ import annotations

import io
import struct
import wave

import numpy as np
import pytest

from ringstage.classifier import RING_TONE
from ringstage.config import (
    AppConfig,
    ClassifierConfig,
    DecoderConfig,
    SegmentationConfig,
)
from ringstage.decoder import SampleBuffer
from ringstage.diagnostics import EventKind, MemorySink
from ringstage.errors import (
    ConfigError,
    InvalidRateError,
    TruncatedAudioError,
    UnreadableAudioError,
)
from ringstage.pipeline import (
    PipelineResult,
    detect_call_stages,
    detect_call_stages_from_file,
    run_on_buffer,
)


SAMPLE_RATE = 8000
TONE_HZ = 440


# ── helpers ──────────────────────────────────────────────────────────

def _tone(seconds: float, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(round(seconds * SAMPLE_RATE))) / SAMPLE_RATE
    return amplitude * np.sin(2 * np.pi * TONE_HZ * t)


def _silence(seconds: float) -> np.ndarray:
    return np.zeros(int(round(seconds * SAMPLE_RATE)))


def _to_wav_bytes(audio: np.ndarray, sample_rate: int = SAMPLE_RATE) -> bytes:
    pcm = (audio * 32767).clip(-32768, 32767).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


def _call_recording() -> np.ndarray:
    """20 s: ring tone 1.5 s, then stages of 4.2 s and 7.0 s."""
    audio = np.concatenate([
        _silence(1.0), _tone(1.5),
        _silence(1.0), _tone(4.2),
        _silence(1.0), _tone(7.0),
    ])
    return np.concatenate([audio, _silence(20.0 - len(audio) / SAMPLE_RATE)])


# ── happy path ───────────────────────────────────────────────────────

class TestDetectCallStages:
    def test_recording_is_twenty_seconds(self):
        assert len(_call_recording()) == 20 * SAMPLE_RATE

    def test_three_bursts(self):
        result = detect_call_stages(_to_wav_bytes(_call_recording()))
        assert result.to_output() == ["A1_SOD", "C1", "2"]

    def test_result_details(self):
        result = detect_call_stages(_to_wav_bytes(_call_recording()))
        assert result.sample_rate == SAMPLE_RATE
        assert len(result.segments) == 3
        assert [c.label for c in result.classified] == [RING_TONE, "A1_SOD", "C1"]
        assert [c.duration for c in result.classified] == pytest.approx([1.5, 4.2, 7.0])
        assert result.labels == ["A1_SOD", "C1"]
        assert result.count == 2

    def test_from_file(self, tmp_path):
        p = tmp_path / "call.wav"
        p.write_bytes(_to_wav_bytes(_call_recording()))
        result = detect_call_stages_from_file(p)
        assert result.to_output() == ["A1_SOD", "C1", "2"]

    def test_legacy_header_skip_same_labels(self):
        cfg = AppConfig(decoder=DecoderConfig(legacy_header_skip=True))
        result = detect_call_stages(_to_wav_bytes(_call_recording()), cfg)
        assert result.to_output() == ["A1_SOD", "C1", "2"]

    def test_silence_only(self):
        result = detect_call_stages(_to_wav_bytes(_silence(5.0)))
        assert result.to_output() == ["0"]

    def test_overlong_tone_not_counted(self):
        audio = np.concatenate([_silence(1.0), _tone(18.0), _silence(2.0)])
        sink = MemorySink()
        result = detect_call_stages(_to_wav_bytes(audio), sink=sink)
        assert len(result.segments) == 1
        assert result.to_output() == ["0"]
        assert len(sink.of_kind(EventKind.SEGMENT_UNCLASSIFIED)) == 1

    def test_unterminated_tone_flushed_on_request(self):
        audio = np.concatenate([_silence(1.0), _tone(3.0)])
        assert detect_call_stages(_to_wav_bytes(audio)).to_output() == ["0"]

        cfg = AppConfig(segmentation=SegmentationConfig(flush_open_segment=True))
        result = detect_call_stages(_to_wav_bytes(audio), cfg)
        assert result.to_output() == ["A1", "1"]

    def test_diagnostics_trace(self):
        sink = MemorySink()
        detect_call_stages(_to_wav_bytes(_call_recording()), sink=sink)
        kinds = [e.kind for e in sink.events]
        assert kinds.count(EventKind.SEGMENT_DETECTED) == 3
        assert kinds.count(EventKind.DURATION_COMPUTED) == 3
        assert kinds.count(EventKind.RING_TONE_DETECTED) == 1
        assert kinds.index(EventKind.SEGMENTS_EXTRACTED) < kinds.index(
            EventKind.DURATION_COMPUTED
        )


class TestRunOnBuffer:
    def test_spoken_four_seconds(self):
        sr = 16000
        samples = np.concatenate([
            np.zeros(sr), np.full(4 * sr, 0.5), np.zeros(sr),
        ])
        result = run_on_buffer(SampleBuffer(samples, sr))
        assert len(result.segments) == 1
        assert result.segments[0].duration(sr) == pytest.approx(4.0, abs=0.05)
        assert result.labels == ["A1_SOD"]

    def test_result_output_is_fresh_list(self):
        result = PipelineResult(sample_rate=8000, segments=[], classified=[])
        out = result.to_output()
        out.append("x")
        assert result.to_output() == ["0"]


# ── failures ─────────────────────────────────────────────────────────

class TestFailures:
    def test_truncated_reports_and_raises(self):
        sink = MemorySink()
        with pytest.raises(TruncatedAudioError):
            detect_call_stages(b"RIFF", sink=sink)
        failures = sink.of_kind(EventKind.DECODE_FAILURE)
        assert len(failures) == 1
        assert failures[0].data["error_type"] == "TruncatedAudioError"

    def test_missing_file(self, tmp_path):
        sink = MemorySink()
        with pytest.raises(UnreadableAudioError):
            detect_call_stages_from_file(tmp_path / "nope.wav", sink=sink)
        assert len(sink.of_kind(EventKind.DECODE_FAILURE)) == 1

    def test_zero_sample_rate(self):
        raw = bytearray(_to_wav_bytes(_silence(1.0)))
        struct.pack_into("<i", raw, 24, 0)
        with pytest.raises(InvalidRateError):
            detect_call_stages(bytes(raw))

    def test_bad_tolerance_rejected_before_decoding(self):
        cfg = AppConfig(classifier=ClassifierConfig(tolerance_sec=-1.6))
        sink = MemorySink()
        with pytest.raises(ConfigError, match="non-ascending"):
            detect_call_stages(b"RIFF", cfg, sink)
        assert sink.events == []

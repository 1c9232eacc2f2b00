"""Configuration loading and dataclass definitions."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field

import yaml


@dataclass
class SegmentationConfig:
    min_voice_activity_period: float = 0.05
    signal_low_level_limit: float = 0.01
    min_silence_duration_between_segments: float = 0.5
    flush_open_segment: bool = False


@dataclass
class DecoderConfig:
    legacy_header_skip: bool = False


@dataclass
class ClassifierConfig:
    tolerance_sec: float = 0.5


@dataclass
class AppConfig:
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)


def load_config(path: str) -> AppConfig:
    """Load configuration from a YAML file."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return _build_config(data)


def _build_config(data: dict) -> AppConfig:
    return AppConfig(
        segmentation=_build_segmentation(data.get("segmentation", {})),
        decoder=_build_decoder(data.get("decoder", {})),
        classifier=_build_classifier(data.get("classifier", {})),
    )


def _build_segmentation(d: dict) -> SegmentationConfig:
    return SegmentationConfig(
        min_voice_activity_period=d.get("min_voice_activity_period", 0.05),
        signal_low_level_limit=d.get("signal_low_level_limit", 0.01),
        min_silence_duration_between_segments=d.get(
            "min_silence_duration_between_segments", 0.5
        ),
        flush_open_segment=d.get("flush_open_segment", False),
    )


def _build_decoder(d: dict) -> DecoderConfig:
    return DecoderConfig(
        legacy_header_skip=d.get("legacy_header_skip", False),
    )


def _build_classifier(d: dict) -> ClassifierConfig:
    return ClassifierConfig(
        tolerance_sec=d.get("tolerance_sec", 0.5),
    )


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Merge CLI arguments into the loaded config (CLI wins)."""
    seg = config.segmentation
    if args.min_voice_activity_period is not None:
        seg.min_voice_activity_period = args.min_voice_activity_period
    if args.signal_low_level_limit is not None:
        seg.signal_low_level_limit = args.signal_low_level_limit
    if args.min_silence_duration is not None:
        seg.min_silence_duration_between_segments = args.min_silence_duration
    if args.flush_open_segment:
        seg.flush_open_segment = True
    if args.legacy_header_skip:
        config.decoder.legacy_header_skip = True
    return config


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    p = argparse.ArgumentParser(
        prog="ringstage",
        description="Detect tone segments in a mono WAV call recording "
                    "and label them by call stage.",
    )
    p.add_argument("wav_path", type=str,
                    help="Path to a mono PCM WAV file")
    p.add_argument("--config", type=str, default="config.yaml",
                    help="Path to YAML config file (default: config.yaml)")
    p.add_argument("--min-voice-activity-period", type=float,
                    help="RMS window length in seconds (overrides config)")
    p.add_argument("--signal-low-level-limit", type=float,
                    help="RMS activity threshold, full scale = 1.0 (overrides config)")
    p.add_argument("--min-silence-duration", type=float,
                    help="Silence in seconds that separates two segments (overrides config)")
    p.add_argument("--flush-open-segment", action="store_true",
                    help="Emit a segment still open at the end of the recording")
    p.add_argument("--legacy-header-skip", action="store_true",
                    help="Reproduce the old header offset arithmetic when decoding")
    p.add_argument("--verbose", action="store_true",
                    help="Print segment diagnostics while processing")
    p.add_argument("--json", action="store_true",
                    help="Print the result as a JSON list")
    return p

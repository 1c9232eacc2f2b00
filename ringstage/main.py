"""ring-stage-detector: label call stages by tone duration.

Run with:
    python -m ringstage.main recording.wav --config config.yaml

Pipeline:
    WAV bytes → samples → RMS windows → segments → stage labels
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

from ringstage.config import (
    AppConfig,
    apply_cli_overrides,
    build_arg_parser,
    load_config,
)
from ringstage.diagnostics import ConsoleSink, NullSink
from ringstage.errors import RingStageError
from ringstage.pipeline import PipelineResult, detect_call_stages_from_file


def _print_result(result: PipelineResult, as_json: bool) -> None:
    output = result.to_output()
    if as_json:
        print(json.dumps(output))
        return
    for item in output:
        print(item)


def main(argv: list[str] | None = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    # Load config
    config_path = Path(args.config)
    if config_path.exists():
        config = load_config(str(config_path))
    elif args.config != "config.yaml":
        print(f"Error: config file not found: {args.config}")
        sys.exit(1)
    else:
        config = AppConfig()

    config = apply_cli_overrides(config, args)
    sink = ConsoleSink() if args.verbose else NullSink()

    try:
        result = detect_call_stages_from_file(args.wav_path, config, sink)
    except RingStageError as e:
        print(f"Error: {e}")
        sys.exit(1)

    _print_result(result, args.json)


if __name__ == "__main__":
    main()

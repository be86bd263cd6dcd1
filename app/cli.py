#!/usr/bin/env python3
"""
CLI entrypoint for decomp-typemodel.

Usage:
  python -m app.cli INPUT... [flags]

Flags:
  --config FILE          YAML or JSON pipeline configuration
  --types-profile PATH   (repeatable) extra primitive size profile
  --workers N            phase 1 worker count (1 = inline)
  --threads              use a thread pool instead of processes
  --statics FILE         static variable listing to parse
  --summary-json FILE    write the run summary as JSON
  --verbose
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from app.config import ConfigError, PipelineConfig, load_config
from core.pipeline import DecompilePipeline, PipelineResult, collect_input_files
from utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m app.cli",
        description="Reconstruct a resolved type model from decompiler pseudo-C++ output",
    )
    parser.add_argument('inputs', nargs='+', metavar='INPUT', help='Source files or directories to parse')
    parser.add_argument('--config', help='YAML or JSON configuration file')
    parser.add_argument('--types-profile', action='append', default=[], metavar='PATH',
                        help='Additional primitive size profile (repeatable)')
    parser.add_argument('--workers', type=int, help='Number of parse workers (1 = no pool)')
    parser.add_argument('--threads', action='store_true', help='Parse with threads instead of processes')
    parser.add_argument('--statics', metavar='FILE', help='Static variable listing (ADDRESS decl SIZE bytes [section])')
    parser.add_argument('--summary-json', metavar='FILE', help='Write the run summary as JSON')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    return parser


def print_summary(result: PipelineResult) -> None:
    summary = result.summary()
    kinds = ", ".join(f"{count} {kind}" for kind, count in summary["kinds"].items())
    print(f"Entities: {summary['entities']} ({kinds})")
    print(f"  Forward declarations without body: {summary['stubs']}")
    print(f"  Ignored: {summary['ignored']}")
    print(f"Function bodies: {summary['function_bodies']}")
    if summary["static_variables"]:
        print(f"Static variables: {summary['static_variables']} ({summary['static_values']} with initializer)")
    if summary["merge_events"]:
        merges = ", ".join(f"{count} {action}" for action, count in summary["merge_events"].items())
        print(f"Merge events: {merges}")
    res = summary["resolution"]
    print(f"References: {res['resolved']} resolved, {res['primitive']} primitive, "
          f"{res['external']} external, {res['function_pointer']} function pointer")
    print(f"Laid out: {summary['laid_out']} structs/unions, "
          f"{len(summary['offset_mismatches'])} offset mismatches")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 2

    try:
        cfg = load_config(args.config) if args.config else PipelineConfig()
    except (ConfigError, FileNotFoundError) as e:
        configure_logging()
        logger.error(str(e))
        return 1

    if args.types_profile:
        cfg.types_profiles = (cfg.types_profiles or []) + args.types_profile
    if args.workers is not None:
        cfg.max_workers = args.workers
    if args.threads:
        cfg.use_processes = False
    if args.statics:
        cfg.statics_file = args.statics
    if args.verbose:
        cfg.log_level = "DEBUG"

    try:
        configure_logging(cfg.log_level)
    except ValueError as e:
        configure_logging()
        logger.error(str(e))
        return 1

    try:
        files = collect_input_files(args.inputs, cfg.file_patterns)
        pipeline = DecompilePipeline(cfg)
    except (FileNotFoundError, RuntimeError) as e:
        logger.error(str(e))
        return 1
    if not files:
        logger.error("No input files matched")
        return 1

    result = pipeline.run(files)
    print_summary(result)

    if args.summary_json:
        with open(args.summary_json, 'w', encoding='utf-8') as f:
            json.dump(result.summary(), f, indent=2)
        print("Written", args.summary_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

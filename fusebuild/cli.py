"""
fusebuild command line.

Usage:
    python -m fusebuild [--mode MODE] [--root DIR] [--out DIR] [--port PORT]

Options:
    --mode      development (serve + compile on demand) or production
                (bundle, merge, rewrite, cleanup); default from
                FUSEBUILD_MODE, else development
    --dev       Shorthand for --mode development
    --root      Project root (default: working directory)
    --out       Output directory relative to root (default: dist)
    --port      Development server port (default: 3000)
    --timeout   Seconds allowed per external tool run
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from fusebuild.config import ConfigError, load_config
from fusebuild.dev_server import run_dev_server
from fusebuild.logging import (
    close_all_sinks,
    configure_logging,
    create_sink_for_module,
    get_logger,
    register_sink,
)
from fusebuild.models import BuildMode
from fusebuild.pipeline import Pipeline

log = get_logger('cli')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fusebuild',
        description="Build the front-end: dev server or fused production bundle",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in BuildMode],
        help="Build mode",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Start development server (same as --mode development)",
    )
    parser.add_argument("--root", type=Path, help="Project root")
    parser.add_argument("--out", dest="out_dir", help="Output directory")
    parser.add_argument("--port", type=int, help="Development server port")
    parser.add_argument("--timeout", dest="tool_timeout", type=float,
                        help="Seconds allowed per external tool run")
    parser.add_argument("--log-level", help="Default log level (DEBUG, INFO, ...)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.log_level:
        configure_logging(level=args.log_level)

    mode = BuildMode.DEVELOPMENT.value if args.dev else args.mode
    try:
        config = load_config(
            args.root,
            mode=mode,
            out_dir=args.out_dir,
            port=args.port,
            tool_timeout=args.tool_timeout,
        )
    except ConfigError as e:
        log.error("Invalid configuration: %s", e)
        return 2

    print(f"\n{'=' * 60}")
    print(f"  FUSEBUILD: {config.mode.value.upper()}")
    print(f"{'=' * 60}\n")

    if config.mode is BuildMode.DEVELOPMENT:
        run_dev_server(config)
        return 0

    register_sink('build', create_sink_for_module('build'))
    try:
        report = Pipeline(config).run()
    finally:
        close_all_sinks()

    print(f"\nOutput: {config.out_path}")
    if report.degraded:
        print(f"Completed with {len(report.warnings)} warning(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
humanhold CLI

Command-line interface for running and simulating hold macros.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .errors import ConfigError, UnknownModeError
from .utils.config import load_config
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def cmd_run(args, config) -> int:
    """Listen for toggle keys and drive the HID controller."""
    from .host import run_host

    return run_host(config, dry_run=args.dry_run)


def cmd_simulate(args, config) -> int:
    """Simulate a mode offline and print hold statistics."""
    from .simulate import simulate, format_report

    try:
        policy = config.registry().get(args.mode)
    except UnknownModeError as e:
        print(f"Error: {e}. Available: {', '.join(config.registry().names())}", file=sys.stderr)
        return 1

    report = simulate(
        policy,
        seconds=args.seconds,
        step_ms=args.step_ms,
        seed=args.seed,
        config=config.engine,
    )

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(format_report(report))

    return 0 if report.ended_clean else 1


def cmd_modes(args, config) -> int:
    """List configured modes."""
    for policy in config.registry():
        toggle = policy.toggle_key or '-'
        print(f"{policy.name}  (toggle: {toggle})")
        for i, phase in enumerate(policy.phases):
            print(f"  {i}: {phase.key:<10} {phase.mean_ms:>8.0f}ms ± {phase.stddev_ms:.0f}ms")
    return 0


def _step_ms(value: str) -> float:
    """argparse type for --step-ms."""
    from .simulate import MIN_STEP_MS

    step = float(value)
    if step < MIN_STEP_MS:
        raise argparse.ArgumentTypeError(f"must be at least {MIN_STEP_MS}, got {value}")
    return step


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='humanhold',
        description='Human-like alternating key-hold macros'
    )
    parser.add_argument('--config', '-c', help='Path to YAML config file')
    parser.add_argument('--log-level', help='Override log level (DEBUG, INFO, ...)')
    parser.add_argument('--log-dir', help='Also write logs to this directory')

    subparsers = parser.add_subparsers(dest='command')

    run_parser = subparsers.add_parser('run', help='Listen for toggle keys and run macros')
    run_parser.add_argument('--dry-run', action='store_true',
                            help='Log key actions instead of sending them')
    run_parser.set_defaults(func=cmd_run)

    sim_parser = subparsers.add_parser('simulate', help='Simulate a mode offline')
    sim_parser.add_argument('mode', help='Mode name (see "modes")')
    sim_parser.add_argument('--seconds', type=float, default=60.0,
                            help='Simulated seconds (default: 60)')
    sim_parser.add_argument('--step-ms', type=_step_ms, default=1.0,
                            help='Simulated scan interval (default: 1)')
    sim_parser.add_argument('--seed', type=int, default=0,
                            help='Entropy mixed in at start (default: 0)')
    sim_parser.add_argument('--json', action='store_true', help='Print JSON report')
    sim_parser.set_defaults(func=cmd_simulate)

    modes_parser = subparsers.add_parser('modes', help='List configured modes')
    modes_parser.set_defaults(func=cmd_modes)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, 'func', None):
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(
        level=args.log_level or config.logging.level,
        log_dir=args.log_dir or config.logging.log_dir,
        colored=config.logging.colored,
    )

    try:
        return args.func(args, config)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130

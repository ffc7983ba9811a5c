#!/usr/bin/env python3
"""
kueasm - KUE-CHIP2 / KUE-CHIP3 assembler CLI

Usage:
    python kueasm.py <input.asm> [-o output.bin] [--mode kuechip2|kuechip3]
                                 [--verbose] [--log-level LEVEL]

The output is a hex listing: address, opcode and operand words followed by
the original source line as a comment. Without -o it is written to the
current directory as <input base name>.bin.

Examples:
    python kueasm.py sum.asm                      # -> sum.bin (kuechip3)
    python kueasm.py sum.asm -o sum.lst --mode kuechip2
    python kueasm.py sum.asm -v                   # debug log on stderr
"""

import argparse
import logging
import os
import sys

# Allow running from project root or as module
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from kue_assembler import __version__
from kue_assembler.assembler import Assembler
from kue_assembler.config import DEFAULT_LOG_LEVEL, DEFAULT_TARGET, LOG_LEVELS, TARGET_PROFILES
from kue_assembler.errors import AssemblerError

logger = logging.getLogger("kueasm")


def default_output_path(input_path: str) -> str:
    """'dir/prog.asm' -> 'prog.bin' (placed in the current directory)."""
    base = os.path.basename(input_path)
    if base.endswith('.asm'):
        base = base[:-len('.asm')]
    return base + '.bin'


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="kueasm",
        description="Two-pass assembler for the KUE-CHIP2 / KUE-CHIP3 teaching CPUs",
        epilog="Modes: " + ", ".join(
            f"{name} ({p['description']})" for name, p in TARGET_PROFILES.items()),
    )
    parser.add_argument("input", help="Input assembly source file")
    parser.add_argument("-o", "--output", help="Output file (default: <input base name>.bin)")
    parser.add_argument("--mode", default=DEFAULT_TARGET, choices=list(TARGET_PROFILES.keys()),
                        help=f"Target CPU (default: {DEFAULT_TARGET})")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print detailed log to stderr (same as --log-level debug)")
    parser.add_argument("--log-level", default=None, choices=list(LOG_LEVELS.keys()),
                        help=f"Log level (default: {DEFAULT_LOG_LEVEL})")
    parser.add_argument("--version", action="version", version=f"kueasm {__version__}")

    args = parser.parse_args(argv)

    level_name = args.log_level or ("debug" if args.verbose else DEFAULT_LOG_LEVEL)
    logging.basicConfig(
        level=LOG_LEVELS[level_name],
        format='%(levelname)s: %(message)s',
    )

    out_path = args.output or default_output_path(args.input)
    logger.info(f"input:  {args.input}")
    logger.info(f"output: {out_path}")

    # Read input
    try:
        with open(args.input, "r", encoding="utf-8") as f:
            source = f.read()
    except FileNotFoundError:
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        return 1
    except IOError as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return 1

    try:
        asm = Assembler(args.mode, log_level=level_name)
        listing = asm.assemble(source)
    except AssemblerError as e:
        print(f"Assembler error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal assembler error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 2

    try:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(listing)
    except IOError as e:
        print(f"Error writing {out_path}: {e}", file=sys.stderr)
        return 1

    logger.info(f"Wrote {len(asm.lines)} line(s) to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

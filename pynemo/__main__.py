"""
pynemo/__main__.py

Command-line entry point: calculate one scenario database.

Usage:
    python -m pynemo utopia.sqlite --varstosave vnewcapacity,vproductionbytechnology --numprocs 2
"""

import argparse
import os
import sys

from .config import split_names
from .constants import DEFAULT_SOLVER, DEFAULT_VARSTOSAVE, STATUS_OPTIMAL
from .logs.logger import configure_package_logging, get_logger
from .run import calculate_scenario


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pynemo", description="Calculate a NEMO scenario database.")
    parser.add_argument("dbpath", type=str, help="Path to the SQLite scenario database.")
    parser.add_argument("--varstosave", type=str, default=",".join(DEFAULT_VARSTOSAVE),
                        help="Comma-separated variable families to save.")
    parser.add_argument("--numprocs", type=int, default=0, help="Worker processes (0 = half the CPUs).")
    parser.add_argument("--targetprocs", type=str, default="", help="Comma-separated worker ids.")
    parser.add_argument("--no-restrictvars", dest="restrictvars", action="store_false",
                        help="Declare variables over full dimension products.")
    parser.add_argument("--reportzeros", action="store_true", help="Save zero-valued results.")
    parser.add_argument("--continuoustransmission", action="store_true",
                        help="Relax transmission build decisions to [0, 1].")
    parser.add_argument("--solver", type=str, default=DEFAULT_SOLVER, help="Pyomo solver name.")
    parser.add_argument("--tee", action="store_true", help="Stream solver output.")
    parser.add_argument("--config", type=str, default=None, help="Configuration file (ini, cfg, yaml).")
    parser.add_argument("--logdir", type=str, default=None, help="Also write a run log to this directory.")
    parser.add_argument("--loglevel", type=str, default="INFO", help="Set logging level.")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_package_logging(args.loglevel, quiet=args.quiet)

    status = calculate_scenario(
        args.dbpath,
        varstosave=split_names(args.varstosave),
        numprocs=args.numprocs,
        targetprocs=[int(p) for p in split_names(args.targetprocs)],
        restrictvars=args.restrictvars,
        reportzeros=args.reportzeros,
        continuoustransmission=args.continuoustransmission,
        quiet=args.quiet,
        solver=args.solver,
        tee=args.tee,
        configfile=args.config,
    )

    if args.logdir:
        scenario = os.path.splitext(os.path.basename(args.dbpath))[0]
        get_logger("cli", scenario, args.logdir).info(f"Calculated {args.dbpath}: status {status}.")
    print(status)
    return 0 if status == STATUS_OPTIMAL else 1


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .config import load_yaml, resolve_settings
from .core.runner import ProfileRunner
from .registry import GENOME_STORES

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def profile_cmd(args) -> None:
    data = load_yaml(Path(args.config)) if args.config else {}
    settings = resolve_settings(
        data,
        domains=args.domains,
        reassign=False if args.no_reassign else None,
        target_reads=args.rn_sim,
        refgenomes=args.refgenomes,
        genome_store=args.genome_store,
    )
    store_cls = GENOME_STORES.get(settings.genome_store)
    store = store_cls(
        {
            "refgenomes": settings.refgenomes,
            "download_timeout": settings.download_timeout,
        }
    )
    runner = ProfileRunner(Path(args.outdir), store)
    runner.run(
        report=Path(args.kraken_report),
        assembly_summary=Path(args.assembly_summary),
        settings=settings,
    )


def main() -> None:
    p = argparse.ArgumentParser("tamock")
    sub = p.add_subparsers(dest="cmd", required=True)

    prof_p = sub.add_parser("profile")
    prof_p.add_argument("-k", "--kraken-report", required=True)
    prof_p.add_argument("-a", "--assembly-summary", required=True)
    prof_p.add_argument("-o", "--outdir", default=".")
    prof_p.add_argument("-R", "--refgenomes")
    prof_p.add_argument("-d", "--domains", help="comma separated, any of E,A,B,V (default B)")
    prof_p.add_argument("--no-reassign", action="store_true")
    prof_p.add_argument("--rn-sim", type=int, help="rescale genome-backed reads to this total")
    prof_p.add_argument("--genome-store", choices=GENOME_STORES.names())
    prof_p.add_argument("--config")
    prof_p.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    prof_p.set_defaults(func=profile_cmd)

    args = p.parse_args()
    _configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Sequence

from ..config import ConfigError, MatcherConfig, load_config
from ..domain.filename import parse_receipt_filename
from ..logging import get_logger
from ..orchestrator import ReceiptMatcher, run_forever

LOG = get_logger("cli-main")


def _load_config_or_exit() -> MatcherConfig:
    # .env and job_map.json are looked up from the current working directory
    try:
        return load_config(os.getcwd())
    except ConfigError as exc:
        LOG.error(f"Configuration invalid: {exc}")
        raise SystemExit(1)


def _handle_run(_: argparse.Namespace) -> int:
    config = _load_config_or_exit()
    matcher = ReceiptMatcher.from_config(config)
    run_forever(matcher, config.run_interval_seconds)
    return 0


def _handle_once(_: argparse.Namespace) -> int:
    config = _load_config_or_exit()
    matcher = ReceiptMatcher.from_config(config)
    try:
        summary = matcher.run_once()
    except Exception as exc:
        LOG.exception(f"Run failed: {exc}")
        return 1
    if summary is None:
        return 1
    print(json.dumps(summary.as_dict(), ensure_ascii=False, indent=2))
    return 1 if summary.failed else 0


def _handle_parse(ns: argparse.Namespace) -> int:
    code = 0
    for name in ns.names:
        parsed = parse_receipt_filename(name)
        if parsed is None:
            out = {"name": name, "parsed": None, "actionable": False}
            code = 1
        else:
            out = {
                "name": name,
                "parsed": {
                    "vendor": parsed.vendor,
                    "job_name": parsed.job_name,
                    "date": parsed.date.isoformat() if parsed.date else None,
                    "amount": str(parsed.amount) if parsed.amount is not None else None,
                },
                "actionable": parsed.is_actionable,
            }
            if not parsed.is_actionable:
                code = 1
        print(json.dumps(out, ensure_ascii=False))
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="receipt-matcher",
        description="Attach Google Drive receipt PDFs to matching QuickBooks Online expenses.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser(
        "run",
        help="Run once now, then every RUN_INTERVAL_SECONDS until interrupted.",
    )
    run.set_defaults(handler=_handle_run)

    once = subparsers.add_parser("once", help="Run a single pass and print a JSON summary.")
    once.set_defaults(handler=_handle_once)

    parse = subparsers.add_parser("parse", help="Parse receipt filenames offline and print JSON.")
    parse.add_argument("names", nargs="+", metavar="NAME")
    parse.set_defaults(handler=_handle_parse)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")

    args = build_parser().parse_args(provided)
    code = args.handler(args)
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())

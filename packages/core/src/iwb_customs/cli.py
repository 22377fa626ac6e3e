from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

import orjson

from iwb_customs.errors import CustomsTierError
from iwb_customs.logging import configure_logging
from iwb_customs.settings import get_settings
from iwb_customs.store import open_tier_store
from iwb_customs.tiers.loader import load_tier_rules
from iwb_customs.tiers.resolver import RouteTierResolver

EXIT_INVALID_INPUT = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="iwb-customs", description="Route customs tier tools.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve the customs tier for a shipment")
    resolve.add_argument("--origin", required=True, help="Origin ISO country code")
    resolve.add_argument("--destination", required=True, help="Destination ISO country code")
    resolve.add_argument("--price", required=True, help="Declared price")
    resolve.add_argument("--weight", required=True, help="Total weight in kg")
    source = resolve.add_mutually_exclusive_group()
    source.add_argument("--rules", type=Path, help="JSON tier rule file")
    source.add_argument("--database-url", help="Read tiers from this database instead of a file")

    load = subparsers.add_parser("import", help="Load a JSON tier rule file into the database")
    load.add_argument("--rules", type=Path, help="JSON tier rule file")
    load.add_argument("--database-url", help="Target database URL")
    return parser


def _resolve(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.database_url:
        resolver = RouteTierResolver(open_tier_store(args.database_url, settings.auto_create_tables))
    else:
        resolver = RouteTierResolver.from_file(args.rules or settings.tiers_path)
    match = resolver.resolve(args.origin, args.destination, args.price, args.weight)
    if match is None:
        payload = {"matched": False}
    else:
        payload = {"matched": True, **match.model_dump(mode="json")}
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_SORT_KEYS).decode() + "\n")
    return 0


def _import(args: argparse.Namespace) -> int:
    settings = get_settings()
    rules = load_tier_rules(args.rules or settings.tiers_path)
    store = open_tier_store(args.database_url or settings.database_url, settings.auto_create_tables)
    count = store.bulk_load(rules)
    sys.stdout.write(orjson.dumps({"imported": count}).decode() + "\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    handler = _resolve if args.command == "resolve" else _import
    try:
        return handler(args)
    except CustomsTierError as exc:
        sys.stderr.write(orjson.dumps(exc.to_dict(), default=str).decode() + "\n")
        return EXIT_INVALID_INPUT


if __name__ == "__main__":
    sys.exit(main())

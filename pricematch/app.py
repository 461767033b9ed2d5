import argparse
import json
from pathlib import Path
from typing import Any, List

from . import __version__
from .cleanup import cleanup_stale_observations
from .config import MatchConfig, load_config
from .connectors import connectors_from_config, static_connectors
from .connectors.base import Connector
from .env import load_env
from .errors import InvalidInput
from .logger import get_logger
from .prices import format_minor_units, to_minor_units
from .schema import CandidateDescriptor
from .service import resolve_by_descriptor, score_descriptors
from .storage import SqlResolutionStore


def _read_json(path_str: str) -> Any:
    path = Path(path_str)
    if not path.exists():
        raise SystemExit(f"Input file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise SystemExit(f"Invalid JSON in {path}: {e}")


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _config(args: argparse.Namespace) -> MatchConfig:
    config = load_config(Path(args.config)) if args.config else MatchConfig()
    if getattr(args, "threshold", None) is not None:
        config = config.with_threshold(args.threshold)
    return config


def _connectors(args: argparse.Namespace) -> List[Connector]:
    if args.candidates:
        data = _read_json(args.candidates)
        if not isinstance(data, list):
            raise SystemExit("Candidates file must contain a JSON list")
        candidates = [CandidateDescriptor.from_dict(item) for item in data]
        return static_connectors(candidates)
    data = _read_json(args.connectors)
    if not isinstance(data, list):
        raise SystemExit("Connectors file must contain a JSON list")
    return connectors_from_config(data)


def cmd_resolve(args: argparse.Namespace) -> None:
    if not args.candidates and not args.connectors:
        raise SystemExit("Pass --candidates (offline JSON list) or --connectors (search API config).")
    payload = {
        "source": args.source,
        "source_local_id": args.id,
        "title": args.title,
        "model": args.model,
        "brand": args.brand,
    }
    config = _config(args)
    store = SqlResolutionStore(Path(args.db)) if args.db else None
    body = resolve_by_descriptor(payload, _connectors(args), config=config, store=store)
    _print_json(body)
    get_logger().log_metrics_summary()


def cmd_score(args: argparse.Namespace) -> None:
    source = _read_json(args.source_file)
    candidate = _read_json(args.candidate_file)
    _print_json(score_descriptors(source, candidate, config=_config(args)))


def cmd_price(args: argparse.Namespace) -> None:
    value = to_minor_units(args.text, exponent=args.exponent)
    if value is None:
        print("No price found")
        raise SystemExit(2)
    print(f"{value} ({format_minor_units(value, args.symbol, args.exponent)})")


def cmd_history(args: argparse.Namespace) -> None:
    db_path = Path(args.db)
    if not db_path.exists():
        print(f"Database not found: {db_path}")
        return
    store = SqlResolutionStore(db_path)
    records = store.history(args.key, target_source=args.target)
    if not records:
        print(f"No observations for {args.key}.")
        return
    print(f"Found {len(records)} observations for {args.key}:\n")
    for r in records:
        print(f"{r.observed_at:%Y-%m-%d %H:%M}  {r.target_source}:{r.target_local_id}")
        print(f"  Title: {r.title}")
        print(f"  Price: {format_minor_units(r.price_minor_units)}")
        print(f"  Score: {r.score:.3f} ({r.match_quality})")
        print(f"  URL: {r.url}")
        print()


def cmd_cleanup(args: argparse.Namespace) -> None:
    before, after = cleanup_stale_observations(Path(args.db), days=args.days)
    print(f"Done. before={before} removed={before - after} remaining={after}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pricematch", description="Cross-source product matching and price comparison")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command")

    res = subparsers.add_parser("resolve", help="Find the same product on other sources")
    res.add_argument("--source", required=True, help="Source name of the product (e.g. amazon)")
    res.add_argument("--id", required=True, help="Product id within its source")
    res.add_argument("--title", required=True, help="Product title")
    res.add_argument("--model", help="Explicit model / SKU if known")
    res.add_argument("--brand", help="Brand if known")
    res.add_argument("--candidates", help="JSON list of candidate listings (offline mode)")
    res.add_argument("--connectors", help="JSON list of search API connector options")
    res.add_argument("--config", help="JSON engine config (threshold, weights, ...)")
    res.add_argument("--threshold", type=float, help="Override the availability threshold")
    res.add_argument("--db", help="SQLite database to record price observations")
    res.set_defaults(func=cmd_resolve)

    sc = subparsers.add_parser("score", help="Score two descriptors against each other")
    sc.add_argument("--source-file", required=True, help="JSON source descriptor")
    sc.add_argument("--candidate-file", required=True, help="JSON candidate descriptor")
    sc.add_argument("--config", help="JSON engine config")
    sc.set_defaults(func=cmd_score)

    pr = subparsers.add_parser("price", help="Parse a display price into minor units")
    pr.add_argument("--text", required=True, help="Price text, e.g. \"Rs. 1,499.00\"")
    pr.add_argument("--exponent", type=int, default=2, help="Minor unit exponent (default 2)")
    pr.add_argument("--symbol", default="₹", help="Currency symbol for display")
    pr.set_defaults(func=cmd_price)

    hist = subparsers.add_parser("history", help="Show recorded price observations for a product")
    hist.add_argument("--key", required=True, help="Canonical key, source:id")
    hist.add_argument("--target", help="Only observations from this source")
    hist.add_argument("--db", default="data/prices.db", help="SQLite database (default: data/prices.db)")
    hist.set_defaults(func=cmd_history)

    cl = subparsers.add_parser("cleanup", help="Delete old price observations")
    cl.add_argument("--db", default="data/prices.db", help="SQLite database (default: data/prices.db)")
    cl.add_argument("--days", type=int, default=30, help="Keep this many days (default 30)")
    cl.set_defaults(func=cmd_cleanup)

    return parser


def main(argv=None):
    # Connector API keys may live in .env
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    get_logger(level=args.log_level)
    if hasattr(args, "func"):
        try:
            args.func(args)
        except InvalidInput as e:
            raise SystemExit("Invalid input:\n" + "\n".join(f" - {err}" for err in e.errors))
        return

    parser.print_help()


if __name__ == "__main__":
    main()

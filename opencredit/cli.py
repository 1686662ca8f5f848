"""Command-line entry point for operators"""

import argparse
import json
import sys
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import Any, List, Optional

from opencredit import engine
from opencredit.domain.catalog import RuleCatalog
from opencredit.domain.exceptions import InvalidTransactionDataError
from opencredit.infrastructure.observability.logging import setup_logging
from opencredit.infrastructure.transactions import parse_transactions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="opencredit", description="Rule-driven credit assessment engine")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    assess = commands.add_parser("assess", help="Assess a transaction history (JSON list or {\"transactions\": [...]})")
    assess.add_argument("transactions", help="Path to the transactions JSON file, or - for stdin")
    assess.add_argument("--catalog", help="Catalog path or URL (default: CATALOG_SOURCE)")
    assess.add_argument("--as-of", type=date.fromisoformat, help="Evaluation date, YYYY-MM-DD (default: today)")
    assess.add_argument("--subject", help="Subject id for the log record")

    catalog = commands.add_parser("catalog", help="Show the active rule catalog")
    catalog.add_argument("--catalog", help="Catalog path or URL (default: CATALOG_SOURCE)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, stream=sys.stderr)

    if args.command == "assess":
        return _assess(args)
    return _catalog(args)


def _assess(args: argparse.Namespace) -> int:
    try:
        raw = _read_json(args.transactions)
        records = raw.get("transactions", []) if isinstance(raw, dict) else raw
        if not isinstance(records, list):
            raise InvalidTransactionDataError("Expected a list of transaction records")
        transactions = parse_transactions(records)
    except (OSError, json.JSONDecodeError, InvalidTransactionDataError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    catalog = engine.load_catalog(args.catalog) if args.catalog else engine.current_catalog()
    result = engine.assess_transactions(transactions, subject_id=args.subject, as_of=args.as_of, catalog=catalog)
    _print_json(asdict(result))
    return 0


def _catalog(args: argparse.Namespace) -> int:
    catalog = engine.load_catalog(args.catalog) if args.catalog else engine.current_catalog()
    _print_json(describe_catalog(catalog))
    return 1 if catalog.is_fallback else 0


def describe_catalog(catalog: RuleCatalog) -> dict:
    return {
        "version": catalog.version,
        "name": catalog.name,
        "source": catalog.source,
        "is_fallback": catalog.is_fallback,
        "total_weight": catalog.total_weight,
        "components": [
            {
                "name": c.name,
                "weight": c.weight,
                "metric": c.metric.key,
                "mode": c.calculation.value if c.calculation else "tiers",
                "tiers": len(c.tiers),
            }
            for c in catalog.components
        ],
        "risk_bands": [asdict(band) for band in catalog.risk_bands],
        "eligibility_rules": [rule.id for rule in catalog.eligibility_rules],
        "fraud_rules": [rule.id for rule in catalog.fraud_rules],
        "validation_warnings": list(catalog.validation_warnings),
    }


def _read_json(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _print_json(payload: Any) -> None:
    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


if __name__ == "__main__":
    sys.exit(main())

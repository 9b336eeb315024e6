#!/usr/bin/env python
"""Command-line interface for ExchangeRisk."""

import argparse
import asyncio
import csv
import io
import json
import logging
import random
import sys
from pathlib import Path

from exchangerisk import __version__
from exchangerisk.backends.memory import InMemoryLedger
from exchangerisk.config import Settings
from exchangerisk.core.aggregation import summarize
from exchangerisk.core.codec import record_to_dict
from exchangerisk.core.models import TransactionPhase
from exchangerisk.core.workflow import TransactionWorkflow
from exchangerisk.crypto.signatures import create_signer

logger = logging.getLogger(__name__)

STATUS_MARKS = {
    TransactionPhase.PENDING: "…",
    TransactionPhase.SUCCESS: "✓",
    TransactionPhase.ERROR: "✗",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exchangerisk",
        description="ExchangeRisk - Confidential exchange risk records on a ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ExchangeRisk {__version__}",
    )
    parser.add_argument("-b", "--backend", choices=["memory", "sqlite"], help="Ledger backend")
    parser.add_argument("-d", "--db", dest="db_path", help="SQLite ledger file")
    parser.add_argument("-k", "--key", help="PEM private key used to sign writes")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("check", help="Check ledger availability")
    subparsers.add_parser("list", help="List exchange records")
    subparsers.add_parser("stats", help="Show risk statistics")

    submit_parser = subparsers.add_parser("submit", help="Submit an exchange record")
    submit_parser.add_argument("name", help="Exchange name")
    submit_parser.add_argument("liquidity", type=float, help="Liquidity in millions")
    submit_parser.add_argument("risk_score", type=int, help="Risk score from 1 to 10")

    verify_parser = subparsers.add_parser("verify", help="Mark a record verified")
    verify_parser.add_argument("record_id", help="Record id")

    reject_parser = subparsers.add_parser("reject", help="Mark a record rejected")
    reject_parser.add_argument("record_id", help="Record id")

    export_parser = subparsers.add_parser("export", help="Export exchange records")
    export_parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    export_parser.add_argument("-f", "--format", default="json", choices=["json", "csv"], help="Export format")

    demo_parser = subparsers.add_parser("demo", help="Run a demo against an in-memory ledger")
    demo_parser.add_argument("-n", "--count", type=int, default=5, help="Number of exchanges to submit")

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = Settings.from_env(
            backend=args.backend,
            db_path=args.db_path,
            log_level=args.log_level,
        )
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        return asyncio.run(_dispatch(args, settings))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _create_ledger(settings: Settings):
    """Create ledger instance based on settings."""
    if settings.backend == "memory":
        return InMemoryLedger()
    elif settings.backend == "sqlite":
        from exchangerisk.backends.sqlite import SQLiteLedger
        return SQLiteLedger(settings.db_path)
    else:
        raise ValueError(f"Unsupported backend type: {settings.backend}")


def _load_signer(settings: Settings, key_path=None):
    if key_path:
        return create_signer(settings.signer_algorithm, private_key=Path(key_path).read_bytes())
    return create_signer(settings.signer_algorithm)


def _print_status(status) -> None:
    if status.visible:
        print(f"{STATUS_MARKS[status.phase]} {status.message}")


def _render_records(records) -> str:
    if not records:
        return "No exchange data available"
    lines = [f"{'ID':<22} {'Name':<20} {'Liquidity':>11} {'Risk':>5} {'Status':<9}"]
    for r in records:
        lines.append(
            f"{r.id:<22} {r.name[:20]:<20} {'$' + format(r.liquidity, '.1f') + 'M':>11} "
            f"{r.risk_score:>5} {r.status.value:<9}"
        )
    return "\n".join(lines)


def _render_summary(records) -> str:
    summary = summarize(records)
    dist = summary.distribution
    lines = [
        "Risk Statistics:",
        f"  Total exchanges: {summary.total_count}",
        f"  Average risk score: {summary.average_risk:.1f}",
        f"  High risk exchanges: {summary.high_risk_count}",
        f"  Verified: {summary.verified_count}",
        "  Risk distribution:",
    ]
    for bucket in ("low", "medium", "high"):
        lines.append(f"    {bucket:<7} {getattr(dist, bucket):>4}  {dist.share(bucket) * 100:5.1f}%")
    lines.append("  Liquidity trend:")
    if not summary.trend:
        lines.append("    No data available")
    for point in summary.trend:
        bar = "#" * max(1, round(point.relative_height * 30)) if point.liquidity > 0 else ""
        lines.append(f"    {point.label} {point.liquidity:8.1f} {bar}")
    return "\n".join(lines)


def _export(records, fmt: str) -> str:
    rows = [record_to_dict(r) for r in records]
    if fmt == "json":
        return json.dumps(rows, indent=2)
    output_buffer = io.StringIO()
    if rows:
        writer = csv.DictWriter(output_buffer, fieldnames=list(rows[0]))
        writer.writeheader()
        writer.writerows(rows)
    return output_buffer.getvalue()


async def _dispatch(args, settings: Settings) -> int:
    if args.command == "demo":
        return await _demo(args, settings)

    ledger = _create_ledger(settings)
    reader = ledger.connect()
    workflow = TransactionWorkflow.from_settings(reader, settings, on_status=_print_status)
    try:
        if args.command in ("check", "submit", "verify", "reject"):
            workflow.connect(ledger.connect(signer=_load_signer(settings, args.key)))

        if args.command == "check":
            result = await workflow.check_availability()
            return 0 if result.ok else 1

        if args.command == "submit":
            result = await workflow.create(args.name, args.liquidity, args.risk_score)
            if result.ok:
                print(f"Record id: {result.record_id}")
            return 0 if result.ok else 1

        if args.command in ("verify", "reject"):
            action = workflow.verify if args.command == "verify" else workflow.reject
            result = await action(args.record_id)
            return 0 if result.ok else 1

        records = await workflow.store.load()
        if args.command == "list":
            print(_render_records(records))
        elif args.command == "stats":
            print(_render_summary(records))
        elif args.command == "export":
            output = _export(records, args.format)
            if args.output:
                Path(args.output).write_text(output)
                print(f"Exported {len(records)} records to {args.output}")
            else:
                print(output)
        return 0
    finally:
        workflow.close()
        ledger.close()


async def _demo(args, settings: Settings) -> int:
    print("ExchangeRisk Demo")
    print("=" * 50)

    ledger = InMemoryLedger()
    workflow = TransactionWorkflow.from_settings(
        ledger.connect(),
        settings.model_copy(update={"processing_delay_seconds": 0.0}),
        on_status=_print_status,
    )
    workflow.connect(ledger.connect(signer=_load_signer(settings, args.key)))

    try:
        print("\nSubmitting exchanges...")
        for _ in range(args.count):
            await workflow.create(
                f"Exchange_{random.randint(0, 999)}",
                round(random.random() * 100, 2),
                random.randint(1, 10),
            )

        records = workflow.records
        if len(records) >= 2:
            print("\nAdjudicating...")
            await workflow.verify(records[0].id)
            await workflow.reject(records[1].id)

        print()
        print(_render_records(workflow.records))
        print()
        print(_render_summary(workflow.records))
        print(f"\nLedger holds {len(ledger.receipts)} signed transactions")
        return 0
    finally:
        workflow.close()


if __name__ == "__main__":
    sys.exit(main())

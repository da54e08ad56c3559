#!/usr/bin/env python3
"""Inkasso Case Console.

Operator console for the collection case store. Lists due next actions,
shows the current financials of a case and prints portfolio statistics.
"""

import argparse
import json

# Add project root to path
import os
import sys
from datetime import UTC, date, datetime
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from agents.inkasso.access import AgentAssignments
from agents.inkasso.dto import Actor, UserRole
from agents.inkasso.kpi import PortfolioKPI
from agents.inkasso.service import InkassoService
from agents.inkasso.store import CaseStore
from backend.core.logging import get_logger
from backend.core.observability import init_observability, set_tenant_id, set_trace_id

logger = get_logger("tools.inkasso.case_console")


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD.

    Raises:
        argparse.ArgumentTypeError: If the value is no ISO date
    """
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date: {value} (expected YYYY-MM-DD)") from None


def build_service(args: argparse.Namespace) -> InkassoService:
    if not args.store:
        return InkassoService.from_settings()
    assignments = AgentAssignments.from_file(args.assignments) if args.assignments else None
    return InkassoService(CaseStore(args.store), assignments=assignments)


def build_actor(args: argparse.Namespace) -> Actor:
    return Actor(
        user_id=args.user,
        role=UserRole.parse(args.role),
        name=args.user,
        kreditor_id=args.kreditor,
        linked_debtor_id=args.debtor,
    )


def cmd_due(service: InkassoService, actor: Actor, args: argparse.Namespace) -> int:
    as_of = args.as_of or datetime.now(UTC).date()
    due = service.due_actions(actor, as_of)

    print("=" * 80)
    print(f"DUE NEXT ACTIONS (as of {as_of.isoformat()})")
    print("=" * 80)
    if not due:
        print("No due actions")
        return 0

    for case in due:
        overdue_days = (as_of - case.next_action_date).days
        print(
            f"{case.next_action_date.isoformat()}  {case.case_id:<20} {case.status.value:<18} "
            f"{case.total_amount:>12} {case.currency}  (+{overdue_days}d)"
        )
    print("-" * 80)
    print(f"Total: {len(due)}")
    return 0


def cmd_financials(service: InkassoService, actor: Actor, args: argparse.Namespace) -> int:
    as_of = args.as_of or datetime.now(UTC).date()
    result = service.recompute_financials(args.case_id, as_of)
    if not result.ok:
        logger.warning(
            f"Financials unavailable for case {args.case_id}",
            extra={"case_id": args.case_id, "error_code": result.error.code},
        )
        print(f"❌ {result.error.message}", file=sys.stderr)
        return 1

    case = service.store.get_case(args.case_id)
    ledger = result.value
    print("=" * 80)
    print(f"FINANCIALS {case.case_id} (as of {as_of.isoformat()})")
    print("=" * 80)
    print(f"Status:          {case.status.value}")
    print(f"Principal:       {case.principal_amount} {case.currency}")
    print(f"Costs:           {case.costs} {case.currency}")
    print(f"Additional:      {case.additional_costs} {case.currency}")
    print(f"Procedure costs: {case.procedure_costs} {case.currency}")
    print(f"Interest:        {ledger.interest} {case.currency}"
          + ("  (stored)" if ledger.from_stored_interest else f"  ({ledger.accrued_days} days)"))
    print("-" * 80)
    print(f"Total:           {ledger.total_amount} {case.currency}")
    if case.statute_of_limitations_date:
        print(f"Verjährung:      {case.statute_of_limitations_date.isoformat()}")
    return 0


def cmd_stats(service: InkassoService, actor: Actor, args: argparse.Namespace) -> int:
    stats = service.portfolio_stats(actor)

    if args.output:
        PortfolioKPI().save_report(stats, Path(args.output))

    if args.json:
        print(json.dumps(stats.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print("=" * 80)
    print("PORTFOLIO")
    print("=" * 80)
    print(f"Active cases:       {stats.active_cases}")
    print(f"Legal cases:        {stats.legal_cases}")
    print(f"Total volume:       {stats.total_volume} EUR")
    print(f"Success rate:       {stats.success_rate} %")
    print(f"Projected recovery: {stats.projected_recovery} EUR")
    print("-" * 80)
    for status, count in stats.by_status.items():
        print(f"  {status:<18} {count}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inkasso Case Console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Cases whose next action is due today
  python tools/inkasso/case_console.py --store artifacts/inkasso/cases.json due

  # Interest and total of one case at a given date
  python tools/inkasso/case_console.py financials CASE-2024-001 --as-of 2025-01-01

  # Portfolio statistics as JSON
  python tools/inkasso/case_console.py stats --json
        """,
    )
    parser.add_argument("--store", help="Case store JSON file (default: INKASSO_STORE_PATH)")
    parser.add_argument("--assignments", help="Agent assignments file (with --store)")
    parser.add_argument("--user", default="console", help="Acting user id (default: console)")
    parser.add_argument("--role", default="ADMIN", help="Acting role (default: ADMIN)")
    parser.add_argument("--kreditor", help="Creditor id for CLIENT role")
    parser.add_argument("--debtor", help="Debtor id for DEBTOR role")

    subparsers = parser.add_subparsers(dest="command", required=True)

    due = subparsers.add_parser("due", help="List due next actions")
    due.add_argument("--as-of", type=parse_date, help="Evaluation date (YYYY-MM-DD)")
    due.set_defaults(handler=cmd_due)

    financials = subparsers.add_parser("financials", help="Show interest and total of a case")
    financials.add_argument("case_id", help="Case ID")
    financials.add_argument("--as-of", type=parse_date, help="Evaluation date (YYYY-MM-DD)")
    financials.set_defaults(handler=cmd_financials)

    stats = subparsers.add_parser("stats", help="Show portfolio statistics")
    stats.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    stats.add_argument("--output", help="Also write the report to this file")
    stats.set_defaults(handler=cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    init_observability()
    set_trace_id()
    set_tenant_id(args.kreditor)

    service = build_service(args)
    return args.handler(service, build_actor(args), args)


if __name__ == "__main__":
    sys.exit(main())

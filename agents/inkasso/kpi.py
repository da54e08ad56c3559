"""Portfolio KPIs for collection cases."""

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Dict, Iterable

from .dto import LEGAL_STATUSES, ZERO, Case, CaseStatus, to_money

SUCCESSFUL_STATUSES = frozenset({CaseStatus.PAID, CaseStatus.SETTLED})


@dataclass
class PortfolioStats:
    """Dashboard figures over a set of cases."""

    total_cases: int = 0
    active_cases: int = 0
    legal_cases: int = 0
    closed_cases: int = 0
    total_volume: Decimal = ZERO
    success_rate: Decimal = ZERO  # percent
    projected_recovery: Decimal = ZERO
    by_status: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cases": self.total_cases,
            "active_cases": self.active_cases,
            "legal_cases": self.legal_cases,
            "closed_cases": self.closed_cases,
            "total_volume": str(self.total_volume),
            "success_rate": str(self.success_rate),
            "projected_recovery": str(self.projected_recovery),
            "by_status": self.by_status,
        }


class PortfolioKPI:
    """KPI engine for case portfolios."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def compute(self, cases: Iterable[Case]) -> PortfolioStats:
        """Compute portfolio figures.

        Active cases are all non-terminal cases; the volume is the sum of
        their totals. The success rate is the share of PAID and SETTLED
        among closed cases, and the projected recovery applies that rate to
        the open volume.

        Args:
            cases: Cases to evaluate (usually already access-scoped)

        Returns:
            Portfolio statistics
        """
        cases = list(cases)
        counts = Counter(case.status for case in cases)

        active = [case for case in cases if not case.is_terminal]
        closed = sum(count for status, count in counts.items() if status.is_terminal)
        successful = sum(counts[status] for status in SUCCESSFUL_STATUSES)

        volume = to_money(sum((case.total_amount for case in active), Decimal(0)))
        if closed:
            rate = (Decimal(successful) / Decimal(closed) * 100).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        else:
            rate = ZERO

        return PortfolioStats(
            total_cases=len(cases),
            active_cases=len(active),
            legal_cases=sum(counts[status] for status in LEGAL_STATUSES),
            closed_cases=closed,
            total_volume=volume,
            success_rate=rate,
            projected_recovery=to_money(volume * rate / 100),
            by_status={status.value: count for status, count in sorted(counts.items(), key=lambda i: i[0].value)},
        )

    def save_report(self, stats: PortfolioStats, output_path: Path) -> Path:
        """Write statistics as JSON report.

        Args:
            stats: Computed statistics
            output_path: Target file

        Returns:
            Path of the written report
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as fp:
            json.dump(stats.to_dict(), fp, indent=2, ensure_ascii=False)

        self.logger.info(f"KPI report saved: {output_path}")
        return output_path

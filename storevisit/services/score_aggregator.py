"""Weighted visit compliance score."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable

from storevisit.models.form import ComplianceStatus

STATUS_CREDIT: Dict[ComplianceStatus, float] = {
    ComplianceStatus.COMPLIANT: 1.0,
    ComplianceStatus.PARTIAL: 0.5,
    ComplianceStatus.NON_COMPLIANT: 0.0,
}


@dataclass(frozen=True)
class EvaluatedAnswer:
    """Status of an answered question together with that question's weight."""

    question_id: str
    status: ComplianceStatus
    weight: float = 1.0


@dataclass(frozen=True)
class ScoreSummary:
    score: float
    compliant: int = 0
    partial: int = 0
    non_compliant: int = 0


def count_statuses(statuses: Iterable[ComplianceStatus]) -> Dict[str, int]:
    """Number of answers per compliance status."""
    counts = {status.value: 0 for status in ComplianceStatus}
    for status in statuses:
        counts[ComplianceStatus(status).value] += 1
    return counts


def aggregate(answers: Iterable[EvaluatedAnswer]) -> ScoreSummary:
    """Combine answer statuses into a 0-100 score rounded to two decimals.

    Only the answers given count: unanswered questions are absent from both
    the credited and the total weight. A zero total weight scores 0.
    """
    answers = list(answers)
    total_weight = sum(answer.weight for answer in answers)
    credited = sum(answer.weight * STATUS_CREDIT[answer.status] for answer in answers)

    if total_weight <= 0:
        score = 0.0
    else:
        raw = Decimal(str(credited / total_weight * 100))
        score = float(raw.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

    counts = count_statuses(answer.status for answer in answers)
    return ScoreSummary(score=score, **counts)

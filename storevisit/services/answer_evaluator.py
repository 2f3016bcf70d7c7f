"""Answer evaluation against question compliance rules.

``evaluate`` is a pure function: the same question, value and attachments
always give the same status, and it never raises for ill-typed values (those
are simply non-compliant). Payload type checking happens before evaluation in
``check_answer_value`` so that bad submissions are rejected instead of scored.
"""
from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from storevisit.models.form import ComplianceStatus
from storevisit.schemas.form import (
    LongTextQuestion,
    MultiSelectQuestion,
    NumberQuestion,
    PhotoQuestion,
    Question,
    ShortTextQuestion,
    SingleSelectQuestion,
    YesNoQuestion,
)

COMPLIANT = ComplianceStatus.COMPLIANT
PARTIAL = ComplianceStatus.PARTIAL
NON_COMPLIANT = ComplianceStatus.NON_COMPLIANT


def is_blank(value: Any) -> bool:
    """None, whitespace-only strings and empty lists count as no answer."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def _within(count: float, lower: Optional[float], upper: Optional[float]) -> bool:
    if lower is not None and count < lower:
        return False
    if upper is not None and count > upper:
        return False
    return True


def _mismatch(allow_partial: bool) -> ComplianceStatus:
    return PARTIAL if allow_partial else NON_COMPLIANT


def _evaluate_text(question: ShortTextQuestion, value: Any, attachments: Sequence[str]) -> ComplianceStatus:
    # No content-quality check: any non-empty text is compliant
    return COMPLIANT if isinstance(value, str) else NON_COMPLIANT


def _evaluate_yes_no(question: YesNoQuestion, value: Any, attachments: Sequence[str]) -> ComplianceStatus:
    if not isinstance(value, bool):
        return NON_COMPLIANT
    expected = question.config.expected_value
    if expected is None or value is expected:
        return COMPLIANT
    return _mismatch(question.config.allow_partial)


def _evaluate_number(question: NumberQuestion, value: Any, attachments: Sequence[str]) -> ComplianceStatus:
    if not _is_number(value):
        return NON_COMPLIANT
    return COMPLIANT if _within(value, question.config.min, question.config.max) else NON_COMPLIANT


def _evaluate_single_select(
    question: SingleSelectQuestion, value: Any, attachments: Sequence[str]
) -> ComplianceStatus:
    if not isinstance(value, str):
        return NON_COMPLIANT
    expected = question.config.expected_value
    if expected is None or value == expected:
        return COMPLIANT
    return _mismatch(question.config.allow_partial)


def _evaluate_multi_select(
    question: MultiSelectQuestion, value: Any, attachments: Sequence[str]
) -> ComplianceStatus:
    if not isinstance(value, (list, tuple, set, frozenset)) or not all(isinstance(item, str) for item in value):
        return NON_COMPLIANT
    selected = set(value)
    expected = question.config.expected_value
    if expected is None:
        return COMPLIANT
    expected_set = set(expected)
    if selected == expected_set:
        return COMPLIANT
    if selected & expected_set:
        return _mismatch(question.config.allow_partial)
    return NON_COMPLIANT


def _evaluate_photo(question: PhotoQuestion, value: Any, attachments: Sequence[str]) -> ComplianceStatus:
    config = question.config
    return COMPLIANT if _within(len(attachments), config.min_photos, config.max_photos) else NON_COMPLIANT


_EVALUATORS: Dict[type, Callable[[Any, Any, Sequence[str]], ComplianceStatus]] = {
    ShortTextQuestion: _evaluate_text,
    LongTextQuestion: _evaluate_text,
    YesNoQuestion: _evaluate_yes_no,
    NumberQuestion: _evaluate_number,
    SingleSelectQuestion: _evaluate_single_select,
    MultiSelectQuestion: _evaluate_multi_select,
    PhotoQuestion: _evaluate_photo,
}


def is_answered(question: Question, value: Any, attachments: Sequence[str]) -> bool:
    """Photos are answered by attachments; every other type by its value."""
    if isinstance(question, PhotoQuestion):
        return len(attachments) > 0
    return not is_blank(value)


def evaluate(question: Question, value: Any, attachments: Optional[Sequence[str]] = None) -> ComplianceStatus:
    """Return the compliance status of one answer.

    Optionality is checked before the type rule: a skipped optional question
    is compliant even when it has a positive lower bound, and a skipped
    required question is non-compliant even when its lower bound is zero.
    """
    attachments = list(attachments or [])
    if not is_answered(question, value, attachments):
        return NON_COMPLIANT if question.required else COMPLIANT

    evaluator = _EVALUATORS.get(type(question))
    if evaluator is None:
        raise TypeError(f"No evaluator registered for question type {type(question).__name__}")
    return evaluator(question, value, attachments)


def check_answer_value(question: Question, value: Any) -> Optional[str]:
    """Return why a submitted value does not fit the question, or None."""
    if value is None or isinstance(question, PhotoQuestion):
        return None

    if isinstance(question, (ShortTextQuestion, LongTextQuestion)):
        return None if isinstance(value, str) else "expected text"
    if isinstance(question, YesNoQuestion):
        return None if isinstance(value, bool) else "expected true or false"
    if isinstance(question, NumberQuestion):
        return None if _is_number(value) else "expected a number"
    if isinstance(question, SingleSelectQuestion):
        if not isinstance(value, str):
            return "expected a single option value"
        if value and value not in question.option_values:
            return f"'{value}' is not an option"
        return None
    if isinstance(question, MultiSelectQuestion):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            return "expected a list of option values"
        unknown: List[str] = [item for item in value if item not in question.option_values]
        if unknown:
            return f"{unknown} are not options"
        return None
    raise TypeError(f"No value check registered for question type {type(question).__name__}")

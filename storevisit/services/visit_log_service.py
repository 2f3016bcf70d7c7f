"""Visit log service: answer validation, evaluation, scoring and persistence."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storevisit.config import settings
from storevisit.core.exceptions import ImmutableError, InvalidStateError, NotFoundError, ValidationError
from storevisit.crud.visit_log import visit_log
from storevisit.models.form import TemplateStatus, VisitLog, VisitLogStatus
from storevisit.schemas.form import FormTemplateResponse, Question
from storevisit.schemas.visit_log import AnswerInput, AnswerRecord, VisitLogCreate, VisitLogProgressUpdate
from storevisit.services.answer_evaluator import check_answer_value, evaluate
from storevisit.services.form_template_service import form_template_service
from storevisit.services.score_aggregator import EvaluatedAnswer, ScoreSummary, aggregate
from storevisit.utils.dates import utcnow

logger = logging.getLogger(__name__)


def _normalize_value(value: Any) -> Any:
    """Trim text, turn blank text into None, clean and de-duplicate lists."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        items = [item.strip() if isinstance(item, str) else item for item in value]
        return list(dict.fromkeys(item for item in items if item != ""))
    return value


def _normalize_attachments(attachments: List[str]) -> List[str]:
    return [attachment.strip() for attachment in attachments if attachment and attachment.strip()]


def prepare_answers(
    template: FormTemplateResponse,
    answers: List[AnswerInput],
) -> List[Tuple[Question, AnswerInput]]:
    """Match answers to template questions, rejecting malformed submissions."""
    if not answers:
        raise ValidationError("errors.answers_required")

    prepared: List[Tuple[Question, AnswerInput]] = []
    seen = set()
    for answer in answers:
        question_id = answer.question_id.strip()
        question = template.get_question(question_id)
        if question is None:
            raise ValidationError("errors.unknown_question", question_id=question_id)
        if question_id in seen:
            raise ValidationError("errors.duplicate_answer", question_id=question_id)
        seen.add(question_id)

        value = _normalize_value(answer.value)
        problem = check_answer_value(question, value)
        if problem:
            raise ValidationError("errors.invalid_answer_value", question_id=question_id, reason=problem)

        prepared.append(
            (
                question,
                AnswerInput(
                    question_id=question_id,
                    value=value,
                    attachments=_normalize_attachments(answer.attachments),
                ),
            )
        )
    # Stored in template order
    prepared.sort(key=lambda pair: pair[0].order)
    return prepared


def evaluate_answers(
    template: FormTemplateResponse,
    answers: List[AnswerInput],
) -> Tuple[List[AnswerRecord], ScoreSummary]:
    """Evaluate every answer independently and fold them into a score."""
    now = utcnow()
    records: List[AnswerRecord] = []
    evaluated: List[EvaluatedAnswer] = []
    for question, answer in prepare_answers(template, answers):
        status = evaluate(question, answer.value, answer.attachments)
        records.append(
            AnswerRecord(
                question_id=question.id,
                value=answer.value,
                attachments=answer.attachments,
                compliance_status=status,
                evaluated_at=now,
            )
        )
        evaluated.append(EvaluatedAnswer(question_id=question.id, status=status, weight=question.config.weight))
    return records, aggregate(evaluated)


def diff_answers(previous: List[Dict[str, Any]], current: List[AnswerRecord]) -> List[Dict[str, Any]]:
    """Changes between two answer sets, keyed by question."""
    previous_by_id = {entry["question_id"]: entry for entry in previous}
    changes = []
    for record in current:
        dumped = record.model_dump(mode="json")
        before = previous_by_id.get(record.question_id)
        if before is None or any(
            before.get(field) != dumped[field] for field in ("value", "attachments", "compliance_status")
        ):
            changes.append({"question_id": record.question_id, "previous": before, "current": dumped})
    return changes


class VisitLogService:
    """High-level service for recording and reading visit logs."""

    @staticmethod
    async def _load_template(db: AsyncSession, template_id: UUID) -> FormTemplateResponse:
        template_obj = await form_template_service.get_template(db, template_id=template_id)
        if template_obj.status == TemplateStatus.DRAFT:
            raise InvalidStateError("errors.draft_template", template_id=str(template_id))
        return FormTemplateResponse.model_validate(template_obj)

    @staticmethod
    async def record_visit(db: AsyncSession, *, visit_data: VisitLogCreate) -> VisitLog:
        """Evaluate a visit's answers against a template version and store it."""
        if not visit_data.answers:
            raise ValidationError("errors.answers_required")
        store_id = visit_data.store_id.strip()
        if not store_id:
            raise ValidationError("errors.store_required")

        template = await VisitLogService._load_template(db, visit_data.form_template_id)
        records, summary = evaluate_answers(template, visit_data.answers)
        answers = [record.model_dump(mode="json") for record in records]

        now = utcnow()
        history = [
            {
                "changed_at": now.isoformat(),
                "changed_by": visit_data.created_by,
                "changes": [{"question_id": a["question_id"], "previous": None, "current": a} for a in answers],
            }
        ]
        log = VisitLog(
            store_id=store_id,
            form_template_id=template.id,
            template_version=template.version,
            route_id=visit_data.route_id,
            assignee_id=visit_data.assignee_id,
            created_by=visit_data.created_by,
            visit_date=visit_data.visit_date or now,
            status=visit_data.status,
            compliance_score=summary.score,
            answers=answers,
            history=history,
        )
        db.add(log)
        await db.commit()
        await db.refresh(log)
        logger.info(
            "Recorded visit %s for store %s on template %s v%s: score %.2f (%s compliant, %s partial, %s non-compliant)",
            log.id,
            store_id,
            template.id,
            template.version,
            summary.score,
            summary.compliant,
            summary.partial,
            summary.non_compliant,
        )
        return log

    @staticmethod
    async def save_progress(
        db: AsyncSession,
        *,
        visit_log_id: UUID,
        update_data: VisitLogProgressUpdate,
    ) -> VisitLog:
        """Replace the answers of an in-progress visit, optionally submitting it."""
        log = await VisitLogService.get_visit_log(db, visit_log_id=visit_log_id)
        if log.status == VisitLogStatus.SUBMITTED:
            raise ImmutableError("errors.visit_log_immutable", visit_log_id=str(visit_log_id))

        template = FormTemplateResponse.model_validate(
            await form_template_service.get_template(db, template_id=log.form_template_id)
        )
        records, summary = evaluate_answers(template, update_data.answers)
        answers = [record.model_dump(mode="json") for record in records]

        changes = diff_answers(list(log.answers or []), records)
        history = list(log.history or [])
        if changes:
            history.append(
                {"changed_at": utcnow().isoformat(), "changed_by": update_data.changed_by, "changes": changes}
            )

        saved = await visit_log.update_in_progress(
            db,
            visit_log_id=log.id,
            values={
                "answers": answers,
                "history": history,
                "compliance_score": summary.score,
                "status": update_data.status or VisitLogStatus.IN_PROGRESS,
            },
        )
        if not saved:
            # Submitted (or deleted) by another request since it was loaded
            await db.rollback()
            raise ImmutableError("errors.visit_log_immutable", visit_log_id=str(visit_log_id))
        await db.commit()
        await db.refresh(log)
        logger.info("Saved visit %s (%s): score %.2f", log.id, log.status.value, summary.score)
        return log

    @staticmethod
    async def get_visit_log(db: AsyncSession, *, visit_log_id: UUID) -> VisitLog:
        log = await visit_log.get(db, id=visit_log_id)
        if log is None:
            raise NotFoundError("errors.visit_log_not_found", visit_log_id=str(visit_log_id))
        return log

    @staticmethod
    async def get_latest(db: AsyncSession, *, store_id: str, form_template_id: UUID) -> Optional[VisitLog]:
        return await visit_log.get_latest(db, store_id=store_id.strip(), form_template_id=form_template_id)

    @staticmethod
    async def list_history(
        db: AsyncSession,
        *,
        store_id: str,
        form_template_id: UUID,
        limit: Optional[int] = None,
    ) -> List[VisitLog]:
        """Newest visits first; the limit falls back to the default and is capped."""
        if not limit or limit <= 0:
            limit = settings.VISIT_HISTORY_DEFAULT_LIMIT
        limit = min(limit, settings.VISIT_HISTORY_MAX_LIMIT)
        return await visit_log.get_history(
            db, store_id=store_id.strip(), form_template_id=form_template_id, limit=limit
        )


visit_log_service = VisitLogService()

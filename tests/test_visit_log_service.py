"""Tests for recording and updating visit logs."""
from datetime import timedelta
from uuid import uuid4

import pytest

from conftest import TestSessionLocal, create_form
from storevisit.core.exceptions import ImmutableError, InvalidStateError, NotFoundError, ValidationError
from storevisit.models.form import ComplianceStatus, VisitLog, VisitLogStatus
from storevisit.schemas.visit_log import AnswerInput, VisitLogCreate, VisitLogProgressUpdate
from storevisit.services.visit_log_service import visit_log_service
from storevisit.utils.dates import utcnow


def _visit(template, answers, store_id="S1", **kwargs):
    return VisitLogCreate(
        store_id=store_id,
        form_template_id=template.id,
        created_by="promoter",
        answers=[AnswerInput(**answer) for answer in answers],
        **kwargs,
    )


FULL_MARKS = [
    {"question_id": "clean", "value": True},
    {"question_id": "facings", "value": 6},
    {"question_id": "display", "value": "endcap"},
    {"question_id": "brands", "value": ["a", "b"]},
    {"question_id": "shelf_photo", "attachments": ["s3://bucket/shelf.jpg"]},
]


@pytest.mark.asyncio
async def test_record_visit_all_compliant(db_session, published_form):
    log = await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, FULL_MARKS))

    assert log.compliance_score == 100.0
    assert log.template_version == published_form.version
    assert log.status == VisitLogStatus.SUBMITTED
    assert [a["question_id"] for a in log.answers] == ["clean", "facings", "display", "brands", "shelf_photo"]
    assert {a["compliance_status"] for a in log.answers} == {"compliant"}
    assert len(log.history) == 1
    assert log.visit_date is not None


@pytest.mark.asyncio
async def test_record_visit_scores_only_answered_questions(db_session, published_form):
    answers = [
        {"question_id": "clean", "value": True},
        {"question_id": "facings", "value": 2},
    ]
    log = await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, answers))
    assert log.compliance_score == 50.0


@pytest.mark.asyncio
async def test_record_visit_partial_answers(db_session, published_form):
    answers = [
        {"question_id": "display", "value": "island"},
        {"question_id": "brands", "value": ["a"]},
    ]
    log = await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, answers))
    assert log.compliance_score == 50.0
    assert {a["compliance_status"] for a in log.answers} == {ComplianceStatus.PARTIAL.value}


@pytest.mark.asyncio
async def test_record_visit_normalizes_values(db_session, published_form):
    answers = [
        {"question_id": " brands ", "value": [" a ", "a", "", "b"]},
        {"question_id": "notes", "value": "   "},
        {"question_id": "shelf_photo", "attachments": [" p1.jpg ", ""]},
    ]
    log = await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, answers))
    by_id = {a["question_id"]: a for a in log.answers}
    assert by_id["brands"]["value"] == ["a", "b"]
    assert by_id["notes"]["value"] is None
    assert by_id["notes"]["compliance_status"] == "compliant"
    assert by_id["shelf_photo"]["attachments"] == ["p1.jpg"]


@pytest.mark.asyncio
async def test_required_question_left_blank_is_non_compliant(db_session, published_form):
    answers = [
        {"question_id": "clean", "value": True},
        {"question_id": "shelf_photo", "attachments": []},
    ]
    log = await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, answers))
    assert log.compliance_score == 50.0


@pytest.mark.parametrize(
    "answers",
    [
        [],
        [{"question_id": "unknown", "value": True}],
        [{"question_id": "clean", "value": True}, {"question_id": "clean", "value": False}],
        [{"question_id": "facings", "value": "six"}],
        [{"question_id": "display", "value": "window"}],
        [{"question_id": "brands", "value": ["a", "z"]}],
        [{"question_id": "clean", "value": "yes"}],
    ],
)
@pytest.mark.asyncio
async def test_record_visit_rejects_bad_answers(db_session, published_form, answers):
    with pytest.raises(ValidationError):
        await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, answers))
    assert await visit_log_service.list_history(
        db_session, store_id="S1", form_template_id=published_form.id
    ) == []


@pytest.mark.asyncio
async def test_record_visit_requires_store(db_session, published_form):
    with pytest.raises(ValidationError):
        await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, FULL_MARKS, store_id=" "))


@pytest.mark.asyncio
async def test_record_visit_unknown_template(db_session):
    visit = VisitLogCreate(
        store_id="S1",
        form_template_id=uuid4(),
        answers=[AnswerInput(question_id="clean", value=True)],
    )
    with pytest.raises(NotFoundError):
        await visit_log_service.record_visit(db_session, visit_data=visit)


@pytest.mark.asyncio
async def test_record_visit_on_draft_is_invalid_state(db_session, draft_form):
    with pytest.raises(InvalidStateError):
        await visit_log_service.record_visit(db_session, visit_data=_visit(draft_form, FULL_MARKS))


@pytest.mark.asyncio
async def test_save_progress_tracks_changes(db_session, published_form):
    log = await visit_log_service.record_visit(
        db_session,
        visit_data=_visit(
            published_form,
            [{"question_id": "clean", "value": False}],
            status=VisitLogStatus.IN_PROGRESS,
        ),
    )
    assert log.compliance_score == 0.0

    updated = await visit_log_service.save_progress(
        db_session,
        visit_log_id=log.id,
        update_data=VisitLogProgressUpdate(
            answers=[
                AnswerInput(question_id="clean", value=True),
                AnswerInput(question_id="facings", value=5),
            ],
            changed_by="promoter",
        ),
    )
    assert updated.status == VisitLogStatus.IN_PROGRESS
    assert updated.compliance_score == 100.0
    assert len(updated.history) == 2
    changes = updated.history[-1]["changes"]
    assert {change["question_id"] for change in changes} == {"clean", "facings"}
    clean_change = next(change for change in changes if change["question_id"] == "clean")
    assert clean_change["previous"]["value"] is False
    assert clean_change["current"]["value"] is True


@pytest.mark.asyncio
async def test_save_progress_without_changes_keeps_history(db_session, published_form):
    answers = [{"question_id": "clean", "value": True}]
    log = await visit_log_service.record_visit(
        db_session, visit_data=_visit(published_form, answers, status=VisitLogStatus.IN_PROGRESS)
    )
    updated = await visit_log_service.save_progress(
        db_session,
        visit_log_id=log.id,
        update_data=VisitLogProgressUpdate(
            answers=[AnswerInput(question_id="clean", value=True)],
            status=VisitLogStatus.SUBMITTED,
        ),
    )
    assert len(updated.history) == 1
    assert updated.status == VisitLogStatus.SUBMITTED


@pytest.mark.asyncio
async def test_submitted_log_is_immutable(db_session, published_form):
    log = await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, FULL_MARKS))
    with pytest.raises(ImmutableError):
        await visit_log_service.save_progress(
            db_session,
            visit_log_id=log.id,
            update_data=VisitLogProgressUpdate(answers=[AnswerInput(question_id="clean", value=False)]),
        )


@pytest.mark.asyncio
async def test_visits_on_archived_template_are_kept(db_session, published_form):
    from storevisit.services.form_template_service import form_template_service

    await form_template_service.archive_template(db_session, template_id=published_form.id)
    log = await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, FULL_MARKS))
    assert log.template_version == 1


@pytest.mark.asyncio
async def test_history_and_latest(db_session, published_form):
    now = utcnow()
    for days_ago in (3, 1, 2):
        await visit_log_service.record_visit(
            db_session,
            visit_data=_visit(published_form, FULL_MARKS, visit_date=now - timedelta(days=days_ago)),
        )
    await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, FULL_MARKS, store_id="S2"))

    history = await visit_log_service.list_history(db_session, store_id="S1", form_template_id=published_form.id)
    assert len(history) == 3
    assert history[0].visit_date > history[1].visit_date > history[2].visit_date

    limited = await visit_log_service.list_history(
        db_session, store_id="S1", form_template_id=published_form.id, limit=2
    )
    assert len(limited) == 2

    latest = await visit_log_service.get_latest(db_session, store_id="S1", form_template_id=published_form.id)
    assert latest.id == history[0].id
    assert await visit_log_service.get_latest(db_session, store_id="S9", form_template_id=published_form.id) is None


@pytest.mark.asyncio
async def test_get_visit_log(db_session, published_form):
    log = await visit_log_service.record_visit(db_session, visit_data=_visit(published_form, FULL_MARKS))
    assert (await visit_log_service.get_visit_log(db_session, visit_log_id=log.id)).id == log.id
    with pytest.raises(NotFoundError):
        await visit_log_service.get_visit_log(db_session, visit_log_id=uuid4())


@pytest.mark.asyncio
async def test_logs_for_other_templates_are_separate(db_session, published_form):
    other = await create_form(db_session, name="Other", publish=True)
    await visit_log_service.record_visit(db_session, visit_data=_visit(other, [{"question_id": "clean", "value": True}]))
    assert await visit_log_service.list_history(
        db_session, store_id="S1", form_template_id=published_form.id
    ) == []
    latest = await visit_log_service.get_latest(db_session, store_id="S1", form_template_id=other.id)
    assert latest.template_version == 1
    assert await db_session.get(VisitLog, latest.id) is not None


@pytest.mark.asyncio
async def test_save_progress_after_submit_from_another_session_is_immutable(db_session, published_form):
    log = await visit_log_service.record_visit(
        db_session,
        visit_data=_visit(
            published_form, [{"question_id": "clean", "value": False}], status=VisitLogStatus.IN_PROGRESS
        ),
    )

    async with TestSessionLocal() as other_session:
        await visit_log_service.save_progress(
            other_session,
            visit_log_id=log.id,
            update_data=VisitLogProgressUpdate(
                answers=[AnswerInput(question_id="clean", value=True)],
                status=VisitLogStatus.SUBMITTED,
            ),
        )

    with pytest.raises(ImmutableError):
        await visit_log_service.save_progress(
            db_session,
            visit_log_id=log.id,
            update_data=VisitLogProgressUpdate(answers=[AnswerInput(question_id="facings", value=1)]),
        )

    async with TestSessionLocal() as fresh_session:
        stored = await fresh_session.get(VisitLog, log.id)
        assert stored.status == VisitLogStatus.SUBMITTED
        assert [answer["question_id"] for answer in stored.answers] == ["clean"]
        assert stored.compliance_score == 100.0

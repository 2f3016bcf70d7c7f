"""Visit log schemas."""
from typing import List, Optional, Union
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field, computed_field
from storevisit.models.form import ComplianceStatus, VisitLogStatus
from storevisit.services.score_aggregator import count_statuses

AnswerValue = Union[None, bool, int, float, str, List[str]]


class AnswerInput(BaseModel):
    """Answer as submitted by the caller; compliance is never accepted."""

    question_id: str
    value: AnswerValue = None
    attachments: List[str] = Field(default_factory=list)


class AnswerRecord(BaseModel):
    """Evaluated answer as persisted on a visit log."""

    question_id: str
    value: AnswerValue = None
    attachments: List[str] = Field(default_factory=list)
    compliance_status: ComplianceStatus
    evaluated_at: datetime


class AnswerChange(BaseModel):
    question_id: str
    previous: Optional[AnswerRecord] = None
    current: AnswerRecord


class HistoryEntry(BaseModel):
    """Answers that changed in one save of a visit log."""

    changed_at: datetime
    changed_by: Optional[str] = None
    changes: List[AnswerChange] = Field(default_factory=list)


class StatusCounts(BaseModel):
    compliant: int = 0
    partial: int = 0
    non_compliant: int = 0


class VisitLogCreate(BaseModel):
    """recordVisit payload."""

    store_id: str
    form_template_id: UUID
    route_id: Optional[str] = None
    assignee_id: Optional[str] = None
    created_by: Optional[str] = None
    visit_date: Optional[datetime] = None
    status: VisitLogStatus = VisitLogStatus.SUBMITTED
    answers: List[AnswerInput]


class VisitLogProgressUpdate(BaseModel):
    """Save progress on an in-progress visit log."""

    answers: List[AnswerInput]
    status: Optional[VisitLogStatus] = None
    changed_by: Optional[str] = None


class VisitLogResponse(BaseModel):
    """Visit log response schema."""

    id: UUID
    store_id: str
    form_template_id: UUID
    template_version: int
    route_id: Optional[str] = None
    assignee_id: Optional[str] = None
    created_by: Optional[str] = None
    visit_date: datetime
    status: VisitLogStatus
    compliance_score: float
    answers: List[AnswerRecord]
    history: List[HistoryEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def status_counts(self) -> StatusCounts:
        return StatusCounts(**count_statuses(answer.compliance_status for answer in self.answers))

"""Schema modules."""
from storevisit.schemas.form import (
    FormTemplateCreate,
    FormTemplateUpdate,
    FormTemplateResponse,
    PublishRequest,
    ArchiveRequest,
    NewVersionRequest,
    Question,
    Scope,
)
from storevisit.schemas.visit_log import (
    AnswerInput,
    AnswerRecord,
    VisitLogCreate,
    VisitLogProgressUpdate,
    VisitLogResponse,
)

__all__ = [
    "FormTemplateCreate",
    "FormTemplateUpdate",
    "FormTemplateResponse",
    "PublishRequest",
    "ArchiveRequest",
    "NewVersionRequest",
    "Question",
    "Scope",
    "AnswerInput",
    "AnswerRecord",
    "VisitLogCreate",
    "VisitLogProgressUpdate",
    "VisitLogResponse",
]

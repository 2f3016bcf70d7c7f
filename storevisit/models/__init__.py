"""Model modules."""
from storevisit.models.form import (
    ComplianceStatus,
    FormLineage,
    FormTemplate,
    StoreFormat,
    TemplateStatus,
    VisitLog,
    VisitLogStatus,
)

__all__ = [
    "ComplianceStatus",
    "FormLineage",
    "FormTemplate",
    "StoreFormat",
    "TemplateStatus",
    "VisitLog",
    "VisitLogStatus",
]

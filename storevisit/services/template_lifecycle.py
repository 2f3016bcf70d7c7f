"""Form template lifecycle state machine.

    draft --publish--> published --archive--> archived

Only drafts can be edited. Deletion is allowed from every status and is
handled by the persistence layer.
"""
from __future__ import annotations

from enum import Enum

from storevisit.core.exceptions import ImmutableError, InvalidStateError
from storevisit.models.form import TemplateStatus


class LifecycleAction(str, Enum):
    PUBLISH = "publish"
    ARCHIVE = "archive"


TRANSITIONS = {
    (TemplateStatus.DRAFT, LifecycleAction.PUBLISH): TemplateStatus.PUBLISHED,
    (TemplateStatus.PUBLISHED, LifecycleAction.ARCHIVE): TemplateStatus.ARCHIVED,
}


def next_status(current: TemplateStatus, action: LifecycleAction) -> TemplateStatus:
    """Return the status an action leads to, or raise InvalidStateError."""
    try:
        return TRANSITIONS[(TemplateStatus(current), LifecycleAction(action))]
    except KeyError:
        raise InvalidStateError(action=LifecycleAction(action).value, status=TemplateStatus(current).value) from None


def required_status(action: LifecycleAction) -> TemplateStatus:
    """The single status from which an action is allowed."""
    return next(source for (source, candidate), _ in TRANSITIONS.items() if candidate == action)


def is_editable(status: TemplateStatus) -> bool:
    return TemplateStatus(status) == TemplateStatus.DRAFT


def ensure_editable(status: TemplateStatus, template_id) -> None:
    """Raise ImmutableError unless the template is still a draft."""
    if not is_editable(status):
        raise ImmutableError(template_id=str(template_id), status=TemplateStatus(status).value)

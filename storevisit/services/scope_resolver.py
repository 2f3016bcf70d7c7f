"""Resolution of the published form template that applies to a store."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

from storevisit.core.exceptions import NotFoundError
from storevisit.models.form import TemplateStatus
from storevisit.schemas.form import AllStoresScope, FormatsScope, FormTemplateResponse, Scope, StoresScope
from storevisit.utils.dates import as_utc

# Higher is more specific
SCOPE_SPECIFICITY = {
    StoresScope: 3,
    FormatsScope: 2,
    AllStoresScope: 1,
}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def scope_matches(scope: Scope, store_id: str, store_format: Optional[str] = None) -> bool:
    """Whether a scope covers the given store."""
    if isinstance(scope, AllStoresScope):
        return True
    if isinstance(scope, FormatsScope):
        return store_format is not None and store_format in {fmt.value for fmt in scope.formats}
    if isinstance(scope, StoresScope):
        return store_id in scope.store_ids
    raise TypeError(f"Unknown scope kind {type(scope).__name__}")


def _rank(template: FormTemplateResponse) -> Tuple[int, int, datetime, str]:
    published_at = as_utc(template.published_at) if template.published_at else _EPOCH
    return (SCOPE_SPECIFICITY[type(template.scope)], template.version, published_at, str(template.id))


def resolve_active_template(
    templates: Iterable[FormTemplateResponse],
    store_id: str,
    store_format: Optional[str] = None,
) -> FormTemplateResponse:
    """Pick the published template for a store.

    The most specific scope wins (stores, then formats, then all), then the
    highest version. Raises NotFoundError when no published template matches,
    which callers treat as "let the user pick a template".
    """
    store_id = store_id.strip()
    candidates = [
        template
        for template in templates
        if template.status == TemplateStatus.PUBLISHED and scope_matches(template.scope, store_id, store_format)
    ]
    if not candidates:
        raise NotFoundError("errors.no_active_template", store_id=store_id)
    return max(candidates, key=_rank)

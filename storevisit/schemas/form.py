"""Form template schemas.

Questions and scopes are tagged unions: pydantic picks the concrete model
from the ``type`` (questions) or ``kind`` (scopes) field, and every question
type carries its own compliance config model.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID, uuid4
from datetime import datetime
from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from storevisit.core.exceptions import InvalidScopeError, ValidationError
from storevisit.models.form import StoreFormat, TemplateStatus


# Scopes


class AllStoresScope(BaseModel):
    """Template applies to every store."""

    kind: Literal["all"] = "all"


class FormatsScope(BaseModel):
    """Template applies to stores of the listed formats."""

    kind: Literal["formats"] = "formats"
    formats: List[StoreFormat]

    @field_validator("formats", mode="before")
    @classmethod
    def _strip_formats(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple, set)):
            return [item.strip() if isinstance(item, str) else item for item in value]
        return value

    @field_validator("formats")
    @classmethod
    def _dedupe_formats(cls, value: List[StoreFormat]) -> List[StoreFormat]:
        formats = list(dict.fromkeys(value))
        if not formats:
            raise ValueError("at least one store format is required")
        return formats


class StoresScope(BaseModel):
    """Template applies to the listed stores."""

    kind: Literal["stores"] = "stores"
    store_ids: List[str]

    @field_validator("store_ids")
    @classmethod
    def _normalize_store_ids(cls, value: List[str]) -> List[str]:
        store_ids = list(dict.fromkeys(item.strip() for item in value if item.strip()))
        if not store_ids:
            raise ValueError("at least one store is required")
        return store_ids


Scope = Annotated[Union[AllStoresScope, FormatsScope, StoresScope], Field(discriminator="kind")]

scope_adapter = TypeAdapter(Scope)


def parse_scope(raw: Any) -> Scope:
    """Validate a raw scope payload, raising InvalidScopeError when malformed."""
    if isinstance(raw, (AllStoresScope, FormatsScope, StoresScope)):
        return raw
    try:
        return scope_adapter.validate_python(raw)
    except PydanticValidationError as exc:
        reason = "; ".join(error["msg"] for error in exc.errors())
        raise InvalidScopeError(reason=reason) from exc


# Compliance configs


class ComplianceConfig(BaseModel):
    """Settings shared by every question type."""

    weight: float = Field(default=1.0, ge=0)


class TextConfig(ComplianceConfig):
    pass


class YesNoConfig(ComplianceConfig):
    expected_value: Optional[bool] = None
    allow_partial: bool = False


class NumberConfig(ComplianceConfig):
    """Inclusive numeric bounds; an unset bound does not constrain."""

    min: Optional[float] = None
    max: Optional[float] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "NumberConfig":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min cannot be greater than max")
        return self


class SingleSelectConfig(ComplianceConfig):
    expected_value: Optional[str] = None
    allow_partial: bool = False


class MultiSelectConfig(ComplianceConfig):
    expected_value: Optional[List[str]] = None
    allow_partial: bool = False

    @field_validator("expected_value")
    @classmethod
    def _dedupe_expected(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        return list(dict.fromkeys(value))


class PhotoConfig(ComplianceConfig):
    """Inclusive bounds on the number of attachments."""

    min_photos: Optional[int] = Field(default=None, ge=0)
    max_photos: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PhotoConfig":
        if self.min_photos is not None and self.max_photos is not None and self.min_photos > self.max_photos:
            raise ValueError("min_photos cannot be greater than max_photos")
        return self


# Questions


class QuestionOption(BaseModel):
    """Selectable option of a select question."""

    value: str
    label: str = ""

    @model_validator(mode="after")
    def _normalize(self) -> "QuestionOption":
        self.value = self.value.strip()
        if not self.value:
            raise ValueError("select options must have a value")
        self.label = self.label.strip() or self.value
        return self


class QuestionBase(BaseModel):
    """Fields common to every question type."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str
    description: str = ""
    required: bool = False
    order: Optional[int] = None
    options: List[QuestionOption] = Field(default_factory=list)

    @field_validator("id", "title", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @model_validator(mode="after")
    def _check_base(self) -> "QuestionBase":
        if not self.id:
            self.id = uuid4().hex
        if not self.title:
            raise ValueError("every question needs a title")
        return self


class SelectQuestionBase(QuestionBase):
    @model_validator(mode="after")
    def _check_options(self) -> "SelectQuestionBase":
        values = [option.value for option in self.options]
        if not values:
            raise ValueError(f"select question '{self.title}' needs at least one option")
        if len(set(values)) != len(values):
            raise ValueError(f"select question '{self.title}' has duplicate option values")
        expected = self.config.expected_value
        if expected is not None:
            expected_values = [expected] if isinstance(expected, str) else expected
            unknown = [item for item in expected_values if item not in values]
            if unknown:
                raise ValueError(f"expected value {unknown} is not an option of '{self.title}'")
        return self

    @property
    def option_values(self) -> List[str]:
        return [option.value for option in self.options]


class ShortTextQuestion(QuestionBase):
    type: Literal["short_text"] = "short_text"
    config: TextConfig = Field(default_factory=TextConfig)


class LongTextQuestion(QuestionBase):
    type: Literal["long_text"] = "long_text"
    config: TextConfig = Field(default_factory=TextConfig)


class NumberQuestion(QuestionBase):
    type: Literal["number"] = "number"
    config: NumberConfig = Field(default_factory=NumberConfig)


class YesNoQuestion(QuestionBase):
    type: Literal["yes_no"] = "yes_no"
    config: YesNoConfig = Field(default_factory=YesNoConfig)


class SingleSelectQuestion(SelectQuestionBase):
    type: Literal["single_select"] = "single_select"
    config: SingleSelectConfig = Field(default_factory=SingleSelectConfig)


class MultiSelectQuestion(SelectQuestionBase):
    type: Literal["multi_select"] = "multi_select"
    config: MultiSelectConfig = Field(default_factory=MultiSelectConfig)


class PhotoQuestion(QuestionBase):
    type: Literal["photo"] = "photo"
    config: PhotoConfig = Field(default_factory=PhotoConfig)


Question = Annotated[
    Union[
        ShortTextQuestion,
        LongTextQuestion,
        NumberQuestion,
        YesNoQuestion,
        SingleSelectQuestion,
        MultiSelectQuestion,
        PhotoQuestion,
    ],
    Field(discriminator="type"),
]

questions_adapter = TypeAdapter(List[Question])


def normalize_questions(questions: List[Question]) -> List[Question]:
    """Default missing order to position, enforce unique ids/orders and sort."""
    if not questions:
        raise ValueError("a form template needs at least one question")

    for index, question in enumerate(questions):
        if question.order is None:
            question.order = index

    ids = [question.id for question in questions]
    if len(set(ids)) != len(ids):
        raise ValueError("question ids must be unique within a template")
    orders = [question.order for question in questions]
    if len(set(orders)) != len(orders):
        raise ValueError("question order values must be unique within a template")

    return sorted(questions, key=lambda question: question.order)


def parse_questions(raw: Any) -> List[Question]:
    """Validate a raw question list, raising ValidationError when malformed."""
    try:
        return normalize_questions(questions_adapter.validate_python(raw))
    except PydanticValidationError as exc:
        reason = "; ".join(error["msg"] for error in exc.errors())
        raise ValidationError("errors.invalid_template", reason=reason) from exc
    except ValueError as exc:
        raise ValidationError("errors.invalid_template", reason=str(exc)) from exc


# Templates


class FormTemplateCreate(BaseModel):
    """Form template creation schema."""

    name: str
    description: Optional[str] = None
    scope: Dict[str, Any] = Field(default_factory=lambda: {"kind": "all"})
    questions: List[Dict[str, Any]]
    created_by: Optional[str] = None


class FormTemplateUpdate(BaseModel):
    """Form template update schema (drafts only)."""

    name: Optional[str] = None
    description: Optional[str] = None
    scope: Optional[Dict[str, Any]] = None
    questions: Optional[List[Dict[str, Any]]] = None
    updated_by: Optional[str] = None


class PublishRequest(BaseModel):
    """Publish action payload; a scope replaces the draft's scope."""

    scope: Optional[Dict[str, Any]] = None
    updated_by: Optional[str] = None


class ArchiveRequest(BaseModel):
    """Archive action payload."""

    updated_by: Optional[str] = None


class NewVersionRequest(BaseModel):
    """Payload for opening a new draft version of a lineage."""

    created_by: Optional[str] = None


class FormTemplateResponse(BaseModel):
    """Form template response schema."""

    id: UUID
    lineage_id: UUID
    name: str
    description: Optional[str] = None
    version: int
    status: TemplateStatus
    scope: Scope
    questions: List[Question]
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("questions")
    @classmethod
    def _sort_questions(cls, value: List[Question]) -> List[Question]:
        return sorted(value, key=lambda question: question.order if question.order is not None else 0)

    def get_question(self, question_id: str) -> Optional[Question]:
        return next((question for question in self.questions if question.id == question_id), None)

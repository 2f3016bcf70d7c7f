"""Form template, lineage and visit log models."""
from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Index, Enum as SQLEnum, Text, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storevisit.utils.dates import utcnow
import uuid
from enum import Enum
from storevisit.database import Base
from storevisit.db.types import JSONBType, GUID


class TemplateStatus(str, Enum):
    """Form template lifecycle status."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class VisitLogStatus(str, Enum):
    """Visit log status."""

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class ComplianceStatus(str, Enum):
    """Per-answer compliance verdict."""

    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NON_COMPLIANT = "non_compliant"


class StoreFormat(str, Enum):
    """Store formats a template scope can target."""

    WALMART = "Walmart"
    MAS_X_MENOS = "Mas x Menos"
    PALI = "Pali"
    MAXI_PALI = "Maxi Pali"


class FormLineage(Base):
    """Identity of a form template across its versions.

    ``published_template_id`` is the lineage's current published version and
    ``revision`` is bumped on every change of that pointer, so concurrent
    publishers can compare-and-swap on it.
    """

    __tablename__ = "form_lineages"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    latest_version = Column(Integer, nullable=False, default=1)
    published_template_id = Column(GUID(), nullable=True)
    revision = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    templates = relationship("FormTemplate", back_populates="lineage", cascade="all, delete-orphan")


class FormTemplate(Base):
    """A single version of a form template."""

    __tablename__ = "form_templates"
    __table_args__ = (
        # At most one published version per lineage
        Index(
            "uq_form_templates_published_lineage",
            "lineage_id",
            unique=True,
            postgresql_where=text("status = 'PUBLISHED'"),
            sqlite_where=text("status = 'PUBLISHED'"),
        ),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    lineage_id = Column(GUID(), ForeignKey("form_lineages.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    status = Column(SQLEnum(TemplateStatus), default=TemplateStatus.DRAFT, nullable=False, index=True)
    scope = Column(JSONBType(), nullable=False)  # {kind, formats? | store_ids?}
    questions = Column(JSONBType(), nullable=False, default=list)  # Ordered questions with per-type config
    created_by = Column(String(64), nullable=True)
    updated_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    lineage = relationship("FormLineage", back_populates="templates")


class VisitLog(Base):
    """Evaluated answers of a single store visit."""

    __tablename__ = "visit_logs"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    store_id = Column(String(64), nullable=False, index=True)
    # No foreign key: logs outlive deleted template versions
    form_template_id = Column(GUID(), nullable=False, index=True)
    template_version = Column(Integer, nullable=False)
    route_id = Column(String(64), nullable=True)
    assignee_id = Column(String(64), nullable=True, index=True)
    created_by = Column(String(64), nullable=True)
    visit_date = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(SQLEnum(VisitLogStatus), default=VisitLogStatus.SUBMITTED, nullable=False, index=True)
    compliance_score = Column(Float, nullable=False, default=0.0)
    answers = Column(JSONBType(), nullable=False, default=list)
    history = Column(JSONBType(), nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

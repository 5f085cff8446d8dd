"""Persistent domain records and AI extraction results.

Records are plain pydantic models. Enum-typed fields are stored as their
string values so the same ``model_dump()`` can go straight into MongoDB.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import (
    ClauseType, CrossReferenceType, DocumentStatus, RelationshipType, RiskImpact, RiskSeverity,
    SignatureRole, UserRole
)


def new_id() -> str:
    return uuid.uuid4().hex


class RecordModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class BoundingBox(RecordModel):
    """Normalized 0-1 page coordinates (x=left, y=top)"""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


# ---------------------------------------------------------------------------
# Document structure
# ---------------------------------------------------------------------------

class Section(RecordModel):
    title: str = ""
    content: str = ""
    page_number: int = 1
    bounding_box: Optional[BoundingBox] = None
    level: int = 1


class PageText(RecordModel):
    page_number: int
    raw_text: str = ""
    sections: List[Section] = Field(default_factory=list)


class TableRow(RecordModel):
    cells: List[str] = Field(default_factory=list)


class Table(RecordModel):
    page_number: int = 1
    headers: List[str] = Field(default_factory=list)
    rows: List[TableRow] = Field(default_factory=list)


class ExtractedField(RecordModel):
    field_name: str
    value: Any = None
    page_number: int = 1
    confidence_score: float = 0.5
    bounding_box: Optional[BoundingBox] = None
    reviewed: bool = False
    override_value: Any = None

    @property
    def effective_value(self) -> Any:
        return self.override_value if self.override_value is not None else self.value


class ClauseReference(RecordModel):
    ref: str = ""
    target: str = ""


class ExtractedClause(RecordModel):
    id: str = Field(default_factory=lambda: f"clause_{uuid.uuid4().hex[:9]}")
    title: str = ""
    content: str = ""
    page_number: int = 1
    clause_type: Optional[ClauseType] = None
    confidence_score: float = 0.7
    bounding_box: Optional[BoundingBox] = None
    linked_clauses: List[str] = Field(default_factory=list)
    cross_references: List[ClauseReference] = Field(default_factory=list)
    reviewed: bool = False
    override_content: Optional[str] = None


class SignatureBlock(RecordModel):
    id: str = Field(default_factory=lambda: f"sig_{uuid.uuid4().hex[:9]}")
    role: SignatureRole = SignatureRole.SIGNATORY
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    date: Optional[str] = None
    page_number: int = 1
    confidence_score: float = 0.7
    bounding_box: Optional[BoundingBox] = None


class RelationshipEndpoint(RecordModel):
    clause_id: Optional[str] = None
    text: Optional[str] = None
    document: Optional[str] = None


class Relationship(RecordModel):
    id: str = Field(default_factory=lambda: f"rel_{uuid.uuid4().hex[:9]}")
    type: RelationshipType = RelationshipType.RELATED
    source: RelationshipEndpoint = Field(default_factory=RelationshipEndpoint)
    target: RelationshipEndpoint = Field(default_factory=RelationshipEndpoint)
    page_number: int = 1


class CrossReference(RecordModel):
    id: str = Field(default_factory=lambda: f"xref_{uuid.uuid4().hex[:9]}")
    ref_type: CrossReferenceType = CrossReferenceType.SECTION
    ref_number: str = ""
    target_page_number: Optional[int] = None
    target_section: Optional[str] = None
    context: str = ""
    page_number: int = 1


class DocumentStructure(RecordModel):
    id: str = Field(default_factory=new_id)
    document_id: str
    pages: List[PageText] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    tables: List[Table] = Field(default_factory=list)
    entities: List[Dict[str, Any]] = Field(default_factory=list)
    extracted_fields: List[ExtractedField] = Field(default_factory=list)
    clauses: List[ExtractedClause] = Field(default_factory=list)
    signatures: List[SignatureBlock] = Field(default_factory=list)
    relationships: List[Relationship] = Field(default_factory=list)
    cross_references: List[CrossReference] = Field(default_factory=list)
    document_type: Optional[str] = None

    @property
    def full_text(self) -> str:
        return "\n".join(p.raw_text for p in self.pages)


# ---------------------------------------------------------------------------
# Top level records
# ---------------------------------------------------------------------------

class UserRecord(RecordModel):
    id: str = Field(default_factory=new_id)
    name: str
    email: str
    password_hash: str
    role: UserRole = UserRole.USER
    created_at: datetime = Field(default_factory=datetime.utcnow)


class DocumentRecord(RecordModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    document_name: str
    version: str = "1.0"
    document_type: str = "contract"
    category: str = ""
    upload_date: datetime = Field(default_factory=datetime.utcnow)
    risk_score: int = 0
    status: DocumentStatus = DocumentStatus.PENDING
    file_path: str = ""
    original_name: str = ""
    mime_type: str = "application/pdf"
    summary: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_image(self) -> bool:
        return (self.mime_type or "").startswith("image/")


class RiskFlag(RecordModel):
    id: str = Field(default_factory=new_id)
    document_id: str = ""
    clause_reference: str
    risk_type: str
    severity: RiskSeverity
    explanation: str
    suggested_clause: Optional[str] = None
    page_number: Optional[int] = 1
    clause_id: Optional[str] = None
    regulatory_mapping: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class EmbeddingChunk(RecordModel):
    id: str = Field(default_factory=new_id)
    document_id: str
    chunk_id: str
    section_title: Optional[str] = None
    clause_id: Optional[str] = None
    page_number: int = 1
    text: str
    embedding_vector: List[float] = Field(default_factory=list)


class Citation(RecordModel):
    page_number: int = 1
    text: str = ""
    bounding_box: Optional[BoundingBox] = None


class ChatHistoryEntry(RecordModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    document_ids: List[str]
    question: str
    answer: str
    citations: List[Citation] = Field(default_factory=list)
    confidence: float = 0.0
    risk_mode: bool = False
    timestamp: datetime = Field(default_factory=datetime.utcnow)


# ---------------------------------------------------------------------------
# AI results
# ---------------------------------------------------------------------------

class ExtractedStructure(RecordModel):
    """Normalized result of a Gemini layout-aware extraction"""
    layout_elements: List[Dict[str, Any]] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    clauses: List[ExtractedClause] = Field(default_factory=list)
    relationships: List[Relationship] = Field(default_factory=list)
    signatures: List[SignatureBlock] = Field(default_factory=list)
    cross_references: List[CrossReference] = Field(default_factory=list)
    extracted_fields: List[ExtractedField] = Field(default_factory=list)
    tables: List[Table] = Field(default_factory=list)
    summary: str = ""
    insights: Optional[str] = None
    document_type: Optional[str] = None
    language: Optional[str] = None
    page_count: Optional[int] = None
    raw_text: str = ""


class SemanticRisk(RecordModel):
    risk_type: str = "semantic"
    severity: RiskSeverity = RiskSeverity.MEDIUM
    explanation: str = ""
    clause_id: Optional[str] = None
    clause_title: Optional[str] = None
    suggested_clause: Optional[str] = None
    regulatory_references: List[str] = Field(default_factory=list)
    confidence_score: float = 0.7


class VersionDifference(RecordModel):
    id: str
    type: str
    clause_id: Optional[str] = None
    clause_title: Optional[str] = None
    description: str = ""
    original_text: Optional[str] = None
    new_text: Optional[str] = None
    risk_impact: RiskImpact = RiskImpact.NONE
    severity: Optional[str] = None
    page_number: Optional[int] = None
    moved_to_page: Optional[int] = None
    clause_drift_score: float = 0.0


class SharedEntity(RecordModel):
    type: str = ""
    value: str = ""
    document_ids: List[str] = Field(default_factory=list)


class ConflictValue(RecordModel):
    doc_id: str = ""
    value: str = ""


class EntityConflict(RecordModel):
    entity: str = ""
    values: List[ConflictValue] = Field(default_factory=list)
    severity: str = "low"


class DocumentCrossReference(RecordModel):
    source_doc: str = ""
    target_doc: str = ""
    ref_type: str = ""
    context: str = ""


class MultiDocAnalysis(RecordModel):
    shared_entities: List[SharedEntity] = Field(default_factory=list)
    conflicts: List[EntityConflict] = Field(default_factory=list)
    cross_references: List[DocumentCrossReference] = Field(default_factory=list)
    consolidated_summary: str = ""
    combined_risk_score: float = 0
    recommendations: List[str] = Field(default_factory=list)


class MappedField(RecordModel):
    source_field: str
    target_field: str
    transformation: Optional[str] = None
    confidence: float = 0.0


class SchemaValidationError(RecordModel):
    field: str
    error: str


class SchemaMapping(RecordModel):
    schema_name: str
    schema_version: str = "1.0"
    mapped_fields: List[MappedField] = Field(default_factory=list)
    unmapped_fields: List[str] = Field(default_factory=list)
    validation_errors: List[SchemaValidationError] = Field(default_factory=list)


class GroundedAnswer(RecordModel):
    answer: str
    citations: List[Citation] = Field(default_factory=list)
    confidence: float = 0.7
    used_fields: List[str] = Field(default_factory=list)

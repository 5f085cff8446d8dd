"""Pydantic models for API requests and responses"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import TargetSchema, UserRole
from .document_models import (
    Citation, DocumentRecord, UserRecord, VersionDifference,
)

# === AUTH ===

class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6)
    role: Optional[UserRole] = None

class LoginRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)

class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    created_at: datetime

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserResponse":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role, created_at=user.created_at)

class AuthResponse(BaseModel):
    token: str
    user: UserResponse

# === DOCUMENTS ===

class DocumentResponse(BaseModel):
    id: str
    user_id: str
    document_name: str
    version: str
    document_type: str
    category: str = ""
    upload_date: datetime
    risk_score: int = 0
    status: str
    original_name: str = ""
    mime_type: str = ""
    summary: str = ""
    created_at: datetime

    @classmethod
    def from_record(cls, doc: DocumentRecord) -> "DocumentResponse":
        return cls(**doc.model_dump(exclude={"file_path"}))

class MessageResponse(BaseModel):
    message: str

# === CHAT ===

class ChatRequest(BaseModel):
    message: str = ""
    document_ids: Optional[List[str]] = None
    risk_mode: bool = False

class ChatResponse(BaseModel):
    message: str
    citations: List[Citation] = []
    confidence: float = 0.0
    used_fields: Optional[List[str]] = None

class ChatHistoryItem(BaseModel):
    id: str
    question: str
    answer: str
    citations: List[Citation] = []
    confidence: float = 0.0
    timestamp: datetime

# === RISK ===

class RiskFactor(BaseModel):
    category: str
    severity: str
    description: str
    location: Optional[Dict[str, int]] = None
    suggested_clause: Optional[str] = None
    regulatory_mapping: List[str] = []

class RiskAnalysisResponse(BaseModel):
    document_id: str
    risk_score: int
    risk_factors: List[RiskFactor] = []

class RiskFlagResponse(BaseModel):
    id: str
    document_id: str
    document_name: Optional[str] = None
    risk_score: Optional[int] = None
    clause_reference: str
    risk_type: str
    severity: str
    explanation: str
    suggested_clause: Optional[str] = None
    page_number: Optional[int] = None

# === COMPARISON / ANALYSIS ===

class CompareRequest(BaseModel):
    base_document_id: str
    comparison_document_id: str

class DocumentRef(BaseModel):
    id: str
    name: str
    version: str

class CompareResponse(BaseModel):
    differences: List[VersionDifference] = []
    base_document: DocumentRef
    comparison_document: DocumentRef

class AnalyzeRequest(BaseModel):
    document_ids: List[str] = []

class SchemaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_schema: Optional[TargetSchema] = Field(None, alias="schema")

# === REVIEW ===

class FieldReviewRequest(BaseModel):
    field_name: str
    override_value: Any = None
    approved: Optional[bool] = None

class ClauseReviewRequest(BaseModel):
    clause_id: str
    override_content: Optional[str] = None
    approved: Optional[bool] = None

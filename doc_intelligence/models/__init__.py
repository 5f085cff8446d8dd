"""Models package"""
from .enums import (
    DocumentStatus, DocumentType, RiskSeverity, RiskType, ClauseType, SignatureRole,
    RelationshipType, CrossReferenceType, DifferenceType, RiskImpact, TargetSchema, UserRole,
    SEVERITY_RANK
)
from .document_models import (
    BoundingBox, Section, PageText, TableRow, Table, ExtractedField, ClauseReference,
    ExtractedClause, SignatureBlock, RelationshipEndpoint, Relationship, CrossReference,
    DocumentStructure, UserRecord, DocumentRecord, RiskFlag, EmbeddingChunk, Citation,
    ChatHistoryEntry, ExtractedStructure, SemanticRisk, VersionDifference, SharedEntity,
    ConflictValue, EntityConflict, DocumentCrossReference, MultiDocAnalysis, MappedField,
    SchemaValidationError, SchemaMapping, GroundedAnswer, new_id
)
from .api_models import (
    SignupRequest, LoginRequest, UserResponse, AuthResponse, DocumentResponse,
    MessageResponse, ChatRequest, ChatResponse, ChatHistoryItem, RiskFactor,
    RiskAnalysisResponse, RiskFlagResponse, CompareRequest, CompareResponse, DocumentRef,
    AnalyzeRequest, SchemaRequest, FieldReviewRequest, ClauseReviewRequest
)

__all__ = [
    'DocumentStatus', 'DocumentType', 'RiskSeverity', 'RiskType', 'ClauseType',
    'SignatureRole', 'RelationshipType', 'CrossReferenceType', 'DifferenceType', 'RiskImpact',
    'TargetSchema', 'UserRole', 'SEVERITY_RANK',
    'BoundingBox', 'Section', 'PageText', 'TableRow', 'Table', 'ExtractedField',
    'ClauseReference', 'ExtractedClause', 'SignatureBlock', 'RelationshipEndpoint',
    'Relationship', 'CrossReference', 'DocumentStructure', 'UserRecord', 'DocumentRecord',
    'RiskFlag', 'EmbeddingChunk', 'Citation', 'ChatHistoryEntry', 'ExtractedStructure',
    'SemanticRisk', 'VersionDifference', 'SharedEntity', 'ConflictValue', 'EntityConflict',
    'DocumentCrossReference', 'MultiDocAnalysis', 'MappedField', 'SchemaValidationError',
    'SchemaMapping', 'GroundedAnswer', 'new_id',
    'SignupRequest', 'LoginRequest', 'UserResponse', 'AuthResponse', 'DocumentResponse',
    'MessageResponse', 'ChatRequest', 'ChatResponse', 'ChatHistoryItem', 'RiskFactor',
    'RiskAnalysisResponse', 'RiskFlagResponse', 'CompareRequest', 'CompareResponse',
    'DocumentRef', 'AnalyzeRequest', 'SchemaRequest', 'FieldReviewRequest', 'ClauseReviewRequest'
]

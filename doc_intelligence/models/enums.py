"""Enumeration types for the document intelligence platform"""
from enum import Enum

class DocumentStatus(str, Enum):
    """Lifecycle of an uploaded document"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    UNDER_REVIEW = "under_review"

class DocumentType(str, Enum):
    """Document kinds the classifier can assign"""
    CONTRACT = "contract"
    INVOICE = "invoice"
    IDENTITY_DOCUMENT = "identity_document"
    NDA = "nda"
    SLA = "sla"
    PURCHASE_ORDER = "purchase_order"
    UNKNOWN = "unknown"

class RiskSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class RiskType(str, Enum):
    """Rule categories produced by the risk engine"""
    MISSING_CLAUSE = "missing_clause"
    WEAK_CLAUSE = "weak_clause"
    PAYMENT_RISK = "payment_risk"
    COMPLIANCE = "compliance"
    CONTRACT_IMBALANCE = "contract_imbalance"
    SIGNATURE_AUTHORIZATION = "signature_authorization"
    STRUCTURAL = "structural"
    AMBIGUITY = "ambiguity"
    METADATA_VALIDITY = "metadata_validity"
    VALIDATION = "validation"

class ClauseType(str, Enum):
    DEFINITION = "definition"
    OBLIGATION = "obligation"
    RESTRICTION = "restriction"
    RIGHT = "right"
    TERMINATION = "termination"
    PAYMENT = "payment"
    LIABILITY = "liability"
    CONFIDENTIALITY = "confidentiality"
    DISPUTE = "dispute"
    GENERAL = "general"

class SignatureRole(str, Enum):
    SIGNATORY = "signatory"
    WITNESS = "witness"
    NOTARY = "notary"
    AUTHORIZED_REPRESENTATIVE = "authorized_representative"

class RelationshipType(str, Enum):
    """Links the AI extraction draws between clauses"""
    REFERENCES = "references"
    MODIFIES = "modifies"
    SUPERSEDES = "supersedes"
    ANNEX = "annex"
    APPENDIX = "appendix"
    EXHIBIT = "exhibit"
    RELATED = "related"

class CrossReferenceType(str, Enum):
    SECTION = "section"
    ARTICLE = "article"
    CLAUSE = "clause"
    APPENDIX = "appendix"
    EXHIBIT = "exhibit"
    SCHEDULE = "schedule"
    ANNEX = "annex"

class DifferenceType(str, Enum):
    ADDITION = "addition"
    DELETION = "deletion"
    MODIFICATION = "modification"
    MOVED = "moved"

class RiskImpact(str, Enum):
    NONE = "none"
    INCREASED = "increased"
    DECREASED = "decreased"
    CHANGED = "changed"

class TargetSchema(str, Enum):
    """Downstream schemas extracted fields can be mapped onto"""
    INVOICE = "invoice"
    CONTRACT = "contract"
    PURCHASE_ORDER = "purchase_order"
    NDA = "nda"
    SLA = "sla"
    CUSTOM = "custom"

class UserRole(str, Enum):
    ADMIN = "admin"
    REVIEWER = "reviewer"
    USER = "user"

SEVERITY_RANK = {
    RiskSeverity.CRITICAL.value: 4,
    RiskSeverity.HIGH.value: 3,
    RiskSeverity.MEDIUM.value: 2,
    RiskSeverity.LOW.value: 1,
}

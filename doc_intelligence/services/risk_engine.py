"""
Pattern based risk engine.

Contracts are checked against ten rule categories. Each rule either flags
when its pattern is absent (missing-only rules) or when it is present.
Invoices get GST compliance checks, and every document type is validated
against the fields it is expected to carry. Flags are deduplicated and
folded into a 0-100 risk score.
"""
import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models import DocumentType, RiskFlag, RiskSeverity, RiskType, SemanticRisk
from ..utils.text_processing import alphanumeric_count, normalize_key

logger = logging.getLogger(__name__)

MIN_CONTRACT_TEXT_QUALITY = 50
MIN_SEMANTIC_TEXT_LENGTH = 100
AI_RISK_REFERENCE = "AI-detected risk in document"


@dataclass(frozen=True)
class RiskRule:
    """One detection rule; ``missing_only`` rules flag when the pattern is absent"""
    pattern: str
    risk: str
    severity: str
    missing_only: bool = False
    clause_type: Optional[str] = None

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text, re.IGNORECASE) is not None


# 1. Essential contract clauses
MISSING_CLAUSE_RULES = [
    RiskRule(r"confidential|confidentiality|non-disclosure|trade secret|proprietary information|classified information",
             "Confidentiality clause", "high", True, "confidentiality"),
    RiskRule(r"termination|cancel|terminate|breach of contract|notice period|time limit",
             "Termination clause", "medium", True, "termination"),
    RiskRule(r"limitation of liability|limit.*liability|cap.*liability|maximum liability|liable.*damage",
             "Limitation of liability", "high", True, "liability"),
    RiskRule(r"arbitration|dispute resolution|mediation|governing law|jurisdiction|legal proceeding",
             "Arbitration/dispute resolution clause", "medium", True, "arbitration"),
    RiskRule(r"payment terms|payment schedule|price|fees|compensation|invoice|payment due|due date|net \d+|advance payment",
             "Payment terms", "high", True, "payment"),
    RiskRule(r"data protection|privacy|personal data|gdpr|hipaa|information security|data processing|pii|sensitive data",
             "Data protection clause", "high", True, "data_protection"),
]

# 2. Vague or risky wording
WEAK_CLAUSE_RULES = [
    RiskRule(r"(?:either party|any party)\s+(?:may|can)\s+(?:terminate|cancel|modify|change)\s+(?:at any time|without notice|at will)",
             "Unilateral termination without notice period", "high", clause_type="weak_termination"),
    RiskRule(r"(?:reasonable|appropriate|necessary|as needed|as required)\s+(?:effort|cost|time|determination)",
             "Vague 'reasonable effort' language without specific definitions", "medium", clause_type="vague"),
    RiskRule(r"(?:may consider|may evaluate|may assess|subject to|at discretion)",
             "Discretionary language without clear criteria", "medium", clause_type="vague"),
    RiskRule(r"(?:without prejudice|sole discretion|absolute discretion|irrevocable)",
             "One-sided discretionary language", "medium", clause_type="imbalance"),
    RiskRule(r"(?:as soon as practicable|within a reasonable time|forthwith|immediately)",
             "Undefined timeframes", "low", clause_type="vague"),
    RiskRule(r"(?:indefinitely|perpetual|forever|eternal)",
             "Indefinite obligations", "high", clause_type="weak_termination"),
    RiskRule(r"(?:notwithstanding|without limiting|except as otherwise)",
             "Limiting language that may override other clauses", "medium", clause_type="vague"),
]

# 3. Payment and financial exposure
PAYMENT_RULES = [
    RiskRule(r"late payment|late fee|penalty.*payment|interest.*overdue|default.*payment",
             "Late payment penalty", "medium", True),
    RiskRule(r"refund|return.*money|money back|reimbursement|cancel.*payment",
             "Refund policy", "medium", True),
    RiskRule(r"currency|exchange rate|forex|conversion",
             "Currency/Exchange terms", "medium", True),
    RiskRule(r"price adjustment|price change|escalation|price revision|rate.*increase",
             "Price adjustment clause", "medium", True),
    RiskRule(r"unlimited liability|unlimited.*cost|unlimited.*expense|no.*cap",
             "Unlimited financial exposure", "critical", False),
]

# 4. Regulatory compliance
COMPLIANCE_RULES = [
    RiskRule(r"sox|sarbanes|financial reporting|audit", "SOX compliance", "low", True),
    RiskRule(r"iso \d+|iso.*standard|iso.*certification", "ISO compliance", "low", True),
    RiskRule(r"pci dss|payment card|credit card.*data", "PCI DSS compliance", "low", True),
    RiskRule(r"ccpa|california consumer|privacy.*california", "CCPA compliance", "low", True),
    RiskRule(r"industry.*standard|best practice|regulatory.*requirement", "Industry standards", "low", True),
]

# 5. One-sided terms
IMBALANCE_RULES = [
    RiskRule(r"(?:vendor|supplier|service provider|contractor).*shall.*(?:not|never)",
             "Vendor has no obligations while client has all obligations", "high", clause_type="imbalance"),
    RiskRule(r"(?:client|customer|buyer).*shall.*(?:immediately|at once|without delay)",
             "Client has immediate obligations while vendor has flexibility", "medium", clause_type="imbalance"),
    RiskRule(r"vendor.*not liable|vendor.*immune|vendor.*exempt",
             "Vendor liability exemption", "high", clause_type="imbalance"),
    RiskRule(r"client.*entire risk|client.*assume.*risk|client.*responsible.*all",
             "All risk on client side", "high", clause_type="imbalance"),
    RiskRule(r"unilateral.*amendment|unilateral.*change|modify.*without notice",
             "One-sided amendment rights", "high", clause_type="imbalance"),
    RiskRule(r"waiver.*any.*right|waive.*claim|waive.*remedy",
             "Waiver of rights", "medium", clause_type="imbalance"),
    RiskRule(r"exclusive.*remedy|sole.*remedy|only.*remedy",
             "Exclusive/sole remedy limitations", "medium", clause_type="imbalance"),
]

# 6. Execution formalities (always reported as medium)
SIGNATURE_RULES = [
    RiskRule(r"signature|sign here|authori[sz]ed|signed", "Signature block", "low", True),
    RiskRule(r"date.*(?:of|execution|signature|signing)|executed on|dated", "Execution date", "low", True),
    RiskRule(r"witness|notary|attest|attorney", "Witness/Notarization", "low", True),
    RiskRule(r"company.*name|entity.*name|party.*name", "Party identification", "low", True),
    RiskRule(r"title|position|role|authority", "Signatory authority", "low", True),
]

# 7. Document structure
STRUCTURAL_RULES = [
    RiskRule(r"table of contents|index|table of cases", "Table of contents", "low", True),
    RiskRule(r"definitions|definition of terms|defined terms", "Definitions section", "medium", True),
    RiskRule(r"recitals|whereas|preamble|background", "Recitals/Background", "low", True),
    RiskRule(r"schedule|appendix|exhibit|annex", "Schedules/Appendices", "low", True),
    RiskRule(r"amendment|modification|addendum|revised", "Amendment clause", "medium", True),
    RiskRule(r"entire agreement|whole agreement|integrated", "Entire agreement clause", "medium", True),
    RiskRule(r"severability|separability|invalid.*enforce", "Severability clause", "medium", True),
    RiskRule(r"notice.*address|contact.*information|communication details", "Notice details", "low", True),
]

# 8. Ambiguous wording
AMBIGUITY_RULES = [
    RiskRule(r"reasonable effort|reasonable time|reasonable cost|reasonable",
             "Undefined 'reasonable' standard", "medium", clause_type="ambiguity"),
    RiskRule(r"as needed|as necessary|as appropriate|as required",
             "Undefined triggers for actions", "medium", clause_type="ambiguity"),
    RiskRule(r"may consider|may evaluate|may determine|at discretion",
             "Subjective decision-making without criteria", "medium", clause_type="ambiguity"),
    RiskRule(r"best practice|industry standard|commercially reasonable",
             "Undefined industry standards", "medium", clause_type="ambiguity"),
    RiskRule(r"material breach|substantial breach|significant default",
             "Undefined 'material/substantial' threshold", "medium", clause_type="ambiguity"),
    RiskRule(r"force majeure|act of god|unforeseeable",
             "Undefined force majeure events", "low", clause_type="ambiguity"),
    RiskRule(r"good faith|fair dealing|honest",
             "Undefined good faith standards", "low", clause_type="ambiguity"),
]

# 9. Dates and term metadata
METADATA_RULES = [
    RiskRule(r"effective\s+(date|on|from)\s*\w+|effective:\s*\w+|commencement\s*date|start\s*date",
             "Effective date", "low", True),
    RiskRule(r"expiration\s*date|end\s*date|termination\s*date|expiry|ending\s*date",
             "Expiration/Termination date", "medium", True),
    RiskRule(r"term\s*(and|of|duration|period)|duration\s+of|period\s+of|\d+\s*months?|\d+\s*years?",
             "Term duration", "medium", True),
    RiskRule(r"renewal|automatic\s*renewal|extend\s*term", "Renewal terms", "medium", True),
    RiskRule(r"deadline|due\s*date|payment\s*due|time\s*is\s*of\s*the\s*essence",
             "Critical deadlines", "low", True),
]

# Indian GST invoice validity (flag when absent)
GST_INVOICE_RULES = [
    RiskRule(r"gstin|gst\s*in|gst\s*number|tax\s*identification", "Missing GSTIN (vendor/buyer)", "high", True),
    RiskRule(r"address|registered\s*address|billing\s*address", "Missing full address (supplier/recipient)", "high", True),
    RiskRule(r"place\s*of\s*supply|state\s*code|supply\s*state", "Missing Place of Supply", "high", True),
    RiskRule(r"sac\s*code|hsn\s*code|service\s*code|harmonized", "Missing SAC/HSN code for service/goods", "medium", True),
]

REQUIRED_FIELDS: Dict[str, List[str]] = {
    DocumentType.CONTRACT.value: ["parties", "effective date", "term", "termination"],
    DocumentType.INVOICE.value: ["invoice number", "date", "total", "due date", "vendor", "bill to"],
    DocumentType.IDENTITY_DOCUMENT.value: [],
}

# Alternative phrasings accepted for a required field
REQUIRED_FIELD_PATTERNS: Dict[str, List[str]] = {
    "effective date": [
        r"effective\s+(date|on|from)\s+\w+",
        r"effective:\s*\w+\s+\d+",
        r"commencement\s*date",
        r"start\s*date\s+(of|of\s+)?",
        r"effective\s+\d{1,2}[\/\_\-]\d{1,2}[\/\_\-]\d{2,4}",
        r"effective\s+\w+\s+\d{1,2},?\s+\d{4}",
    ],
    "termination": [
        r"termination\s*(clause|date|period|notice)",
        r"term.*terminat",
        r"notice\s*period",
        r"ending\s+date",
    ],
    "term": [
        r"term\s*(and|of|period|duration)",
        r"duration\s+of",
        r"period\s+of",
        r"\d+\s*months?",
        r"\d+\s*years?",
    ],
    "parties": [
        r"between\s+\w+",
        r"by\s+and\s+between",
        r"party\s+(of|of\s+the)",
        r"incorporated|company|pvt|ltd|limited|inc\.",
    ],
    "invoice number": [
        r"invoice\s*(no|number|#|\.)\s*\d+",
        r"inv\s*(no|#)?\s*\d+",
    ],
    "date": [
        r"date:\s*\d+",
        r"dated\s+\d+",
        r"\d{1,2}[\/\_\-]\d{1,2}[\/\_\-]\d{2,4}",
    ],
    "total": [
        r"total\s*(amount|due|payable)",
        r"grand\s*total",
        r"inr\s*\d+",
        r"\$\s*\d+",
    ],
    "due date": [
        r"due\s*date",
        r"payment\s*due",
        r"payable\s*by",
        r"net\s*\d+",
    ],
    "vendor": [
        r"vendor|supplier|provider|contractor",
    ],
    "bill to": [
        r"bill\s*to| billed\s*to",
        r"billing\s*address",
    ],
}


def is_contract_analysis_applicable(raw_text: str, document_type: str) -> bool:
    """Contract rules only make sense on contracts with enough readable text"""
    return (document_type == DocumentType.CONTRACT.value
            and alphanumeric_count(raw_text) >= MIN_CONTRACT_TEXT_QUALITY)


def should_run_semantic_analysis(raw_text: str, document_type: str) -> bool:
    return (is_contract_analysis_applicable(raw_text, document_type)
            and len(raw_text) > MIN_SEMANTIC_TEXT_LENGTH)


def _flag(document_id: str, reference: str, risk_type: str, severity: str,
          explanation: str, **extra) -> RiskFlag:
    return RiskFlag(
        document_id=document_id,
        clause_reference=reference,
        risk_type=risk_type,
        severity=severity,
        explanation=explanation,
        page_number=1,
        **extra,
    )


def _contract_flags(raw_text: str, document_id: str) -> List[RiskFlag]:
    flags = []

    for rule in MISSING_CLAUSE_RULES:
        if not rule.matches(raw_text):
            flags.append(_flag(
                document_id, rule.risk, RiskType.MISSING_CLAUSE.value, rule.severity,
                f"Missing essential {rule.clause_type} clause: {rule.risk}. "
                f"This is critical for comprehensive contract protection.",
            ))

    for rule in WEAK_CLAUSE_RULES:
        if rule.matches(raw_text):
            flags.append(_flag(
                document_id, rule.risk, RiskType.WEAK_CLAUSE.value, rule.severity,
                f"Weak clause detected: {rule.risk}. This language may create ambiguity or unfair terms.",
            ))

    for rule in PAYMENT_RULES:
        matched = rule.matches(raw_text)
        if not matched and rule.missing_only:
            flags.append(_flag(
                document_id, rule.risk, RiskType.PAYMENT_RISK.value, rule.severity,
                f"Missing payment term: {rule.risk}. This could lead to financial disputes.",
            ))
        elif matched and rule.severity == RiskSeverity.CRITICAL.value:
            flags.append(_flag(
                document_id, rule.risk, RiskType.PAYMENT_RISK.value, rule.severity,
                f"Critical financial exposure: {rule.risk}. This could result in unlimited liability.",
            ))

    for rule in COMPLIANCE_RULES:
        if not rule.matches(raw_text):
            flags.append(_flag(
                document_id, rule.risk, RiskType.COMPLIANCE.value, rule.severity,
                f"Missing {rule.risk} clause. Required for regulatory compliance.",
            ))

    for rule in IMBALANCE_RULES:
        if rule.matches(raw_text):
            flags.append(_flag(
                document_id, rule.risk, RiskType.CONTRACT_IMBALANCE.value, rule.severity,
                f"Contract imbalance detected: {rule.risk}. "
                f"One party may have significantly more power or protection.",
            ))

    for rule in SIGNATURE_RULES:
        if not rule.matches(raw_text):
            flags.append(_flag(
                document_id, rule.risk, RiskType.SIGNATURE_AUTHORIZATION.value, RiskSeverity.MEDIUM.value,
                f"Missing {rule.risk}. Required for proper document execution and enforceability.",
            ))

    for rule in STRUCTURAL_RULES:
        if not rule.matches(raw_text):
            flags.append(_flag(
                document_id, rule.risk, RiskType.STRUCTURAL.value, rule.severity,
                f"Missing structural element: {rule.risk}. May affect document organization and enforceability.",
            ))

    for rule in AMBIGUITY_RULES:
        if rule.matches(raw_text):
            flags.append(_flag(
                document_id, rule.risk, RiskType.AMBIGUITY.value, rule.severity,
                f"Ambiguous language detected: {rule.risk}. This vague wording could lead to disputes.",
            ))

    for rule in METADATA_RULES:
        if not rule.matches(raw_text):
            flags.append(_flag(
                document_id, rule.risk, RiskType.METADATA_VALIDITY.value, rule.severity,
                f"Missing metadata: {rule.risk}. Required for document validity and timeline clarity.",
            ))

    return flags


def _semantic_flag(semantic_risk: Optional[SemanticRisk], document_id: str) -> Optional[RiskFlag]:
    if semantic_risk is None or semantic_risk.severity == RiskSeverity.LOW.value:
        return None
    severity = semantic_risk.severity
    if severity == RiskSeverity.CRITICAL.value:
        severity = RiskSeverity.HIGH.value
    return _flag(
        document_id, AI_RISK_REFERENCE, semantic_risk.risk_type or "semantic", severity,
        semantic_risk.explanation or "Risk identified by semantic analysis.",
        suggested_clause=semantic_risk.suggested_clause,
        regulatory_mapping=list(semantic_risk.regulatory_references or []),
    )


def _gst_flags(raw_text: str, document_id: str) -> List[RiskFlag]:
    return [
        _flag(
            document_id, rule.risk, RiskType.COMPLIANCE.value, rule.severity,
            f"GST invoice validity: {rule.risk}. Required for valid Input Tax Credit (ITC) under Indian GST rules.",
        )
        for rule in GST_INVOICE_RULES
        if not rule.matches(raw_text)
    ]


def required_field_present(field: str, raw_text: str) -> bool:
    if field in raw_text.lower():
        return True
    return any(re.search(p, raw_text, re.IGNORECASE) for p in REQUIRED_FIELD_PATTERNS.get(field, []))


def _required_field_flags(raw_text: str, document_type: str, document_id: str) -> List[RiskFlag]:
    required = REQUIRED_FIELDS.get(document_type, REQUIRED_FIELDS[DocumentType.CONTRACT.value])
    return [
        _flag(
            document_id, f"Missing required: {field}", RiskType.VALIDATION.value, RiskSeverity.MEDIUM.value,
            f'Document type "{document_type}" typically requires "{field}". Not found or not extracted.',
        )
        for field in required
        if not required_field_present(field, raw_text)
    ]


def dedupe_risk_flags(flags: List[RiskFlag]) -> List[RiskFlag]:
    """Keep the first flag per (type, normalized reference, normalized explanation prefix)"""
    seen = set()
    unique = []
    for flag in flags:
        key = f"{flag.risk_type}:{normalize_key(flag.clause_reference)}:{normalize_key(flag.explanation[:50])}"
        if key in seen:
            continue
        seen.add(key)
        unique.append(flag)
    return unique


def assess_risks(raw_text: str, document_type: str, semantic_risk: Optional[SemanticRisk] = None,
                 document_id: str = "") -> List[RiskFlag]:
    """Run every applicable rule category and return deduplicated flags"""
    raw_text = raw_text or ""
    flags: List[RiskFlag] = []

    if is_contract_analysis_applicable(raw_text, document_type):
        flags.extend(_contract_flags(raw_text, document_id))
        if len(raw_text) > MIN_SEMANTIC_TEXT_LENGTH:
            semantic = _semantic_flag(semantic_risk, document_id)
            if semantic:
                flags.append(semantic)

    if document_type == DocumentType.INVOICE.value:
        flags.extend(_gst_flags(raw_text, document_id))

    flags.extend(_required_field_flags(raw_text, document_type, document_id))

    unique = dedupe_risk_flags(flags)
    logger.info(f"Risk assessment ({document_type}): {len(flags)} raw flags, {len(unique)} after dedupe")
    return unique


def compute_risk_score(flags: List[RiskFlag], document_type: str) -> int:
    high = sum(1 for f in flags if f.severity in (RiskSeverity.HIGH.value, RiskSeverity.CRITICAL.value))
    medium = sum(1 for f in flags if f.severity == RiskSeverity.MEDIUM.value)
    low = sum(1 for f in flags if f.severity == RiskSeverity.LOW.value)

    if document_type == DocumentType.IDENTITY_DOCUMENT.value:
        return min(15, low * 5)
    return min(100, round(high * 25 + medium * 15 + low * 5))

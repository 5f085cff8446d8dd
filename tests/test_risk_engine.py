"""Rule based risk flags and scoring"""
from doc_intelligence.models import RiskFlag, SemanticRisk
from doc_intelligence.services.risk_engine import (
    AI_RISK_REFERENCE,
    assess_risks,
    compute_risk_score,
    dedupe_risk_flags,
    is_contract_analysis_applicable,
    required_field_present,
    should_run_semantic_analysis,
)

from .conftest import CONTRACT_TEXT, ID_TEXT, INVOICE_TEXT


def _flag(severity, reference="Clause", risk_type="missing_clause", explanation="Something is missing"):
    return RiskFlag(clause_reference=reference, risk_type=risk_type, severity=severity, explanation=explanation)


def test_contract_analysis_needs_contract_type_and_readable_text():
    assert is_contract_analysis_applicable(CONTRACT_TEXT, "contract")
    assert not is_contract_analysis_applicable(CONTRACT_TEXT, "invoice")
    assert not is_contract_analysis_applicable("!!! ??? ... " * 20, "contract")
    assert should_run_semantic_analysis(CONTRACT_TEXT, "contract")
    assert not should_run_semantic_analysis("Agreement between A and B, signed in 2024 by both.", "contract")


def test_contract_flags_weak_termination_and_missing_clauses():
    flags = assess_risks(CONTRACT_TEXT, "contract", document_id="doc1")
    references = {f.clause_reference for f in flags}

    assert "Unilateral termination without notice period" in references
    assert "Limitation of liability" in references
    assert "Data protection clause" in references
    # Present in the text, so not reported missing
    assert "Confidentiality clause" not in references
    assert "Payment terms" not in references
    assert all(f.document_id == "doc1" for f in flags)


def test_signature_rules_are_always_medium():
    flags = assess_risks(CONTRACT_TEXT, "contract")
    signature_flags = [f for f in flags if f.risk_type == "signature_authorization"]
    assert signature_flags
    assert {f.severity for f in signature_flags} == {"medium"}


def test_contract_with_required_fields_has_no_validation_flags():
    flags = assess_risks(CONTRACT_TEXT, "contract")
    assert not [f for f in flags if f.risk_type == "validation"]


def test_unlimited_liability_is_critical():
    text = CONTRACT_TEXT + "\nThe Client accepts unlimited liability for all claims.\n"
    flags = assess_risks(text, "contract")
    critical = [f for f in flags if f.severity == "critical"]
    assert [f.clause_reference for f in critical] == ["Unlimited financial exposure"]


def test_invoice_gets_gst_flags_only():
    flags = assess_risks(INVOICE_TEXT, "invoice")
    assert {f.clause_reference for f in flags} == {
        "Missing GSTIN (vendor/buyer)",
        "Missing full address (supplier/recipient)",
        "Missing Place of Supply",
        "Missing SAC/HSN code for service/goods",
    }
    assert compute_risk_score(flags, "invoice") == 90


def test_invoice_missing_required_fields_are_validation_flags():
    flags = assess_risks("GSTIN 29ABCDE1234F1Z5 address place of supply HSN code", "invoice")
    validation = {f.clause_reference for f in flags if f.risk_type == "validation"}
    assert "Missing required: invoice number" in validation
    assert "Missing required: bill to" in validation


def test_required_field_alternative_phrasings():
    assert required_field_present("parties", "Made by and between Foo and Bar")
    assert required_field_present("due date", "Payable Net 45")
    assert not required_field_present("invoice number", "No identifiers here")


def test_semantic_risk_added_and_critical_capped_at_high():
    semantic = SemanticRisk(risk_type="indemnity", severity="critical", explanation="Broad indemnity",
                            suggested_clause="Cap the indemnity", regulatory_references=["GDPR Art. 82"])
    flags = assess_risks(CONTRACT_TEXT, "contract", semantic)
    ai_flags = [f for f in flags if f.clause_reference == AI_RISK_REFERENCE]
    assert len(ai_flags) == 1
    assert ai_flags[0].severity == "high"
    assert ai_flags[0].risk_type == "indemnity"
    assert ai_flags[0].suggested_clause == "Cap the indemnity"
    assert ai_flags[0].regulatory_mapping == ["GDPR Art. 82"]


def test_low_severity_semantic_risk_is_ignored():
    semantic = SemanticRisk(severity="low", explanation="Minor wording")
    flags = assess_risks(CONTRACT_TEXT, "contract", semantic)
    assert not [f for f in flags if f.clause_reference == AI_RISK_REFERENCE]


def test_semantic_risk_ignored_for_non_contracts():
    semantic = SemanticRisk(severity="high", explanation="Odd terms")
    flags = assess_risks(INVOICE_TEXT, "invoice", semantic)
    assert not [f for f in flags if f.clause_reference == AI_RISK_REFERENCE]


def test_dedupe_uses_normalized_reference_and_explanation():
    flags = [
        _flag("high", reference="Payment Terms!"),
        _flag("low", reference="payment terms"),
        _flag("high", reference="payment terms", risk_type="weak_clause"),
    ]
    unique = dedupe_risk_flags(flags)
    assert len(unique) == 2
    assert unique[0].severity == "high"


def test_risk_score_weights_and_cap():
    flags = [_flag("high"), _flag("critical"), _flag("medium"), _flag("low")]
    assert compute_risk_score(flags, "contract") == 25 * 2 + 15 + 5
    assert compute_risk_score([_flag("high")] * 5, "contract") == 100
    assert compute_risk_score([], "contract") == 0


def test_identity_documents_score_low():
    assert compute_risk_score([_flag("low")] * 2, "identity_document") == 10
    assert compute_risk_score([_flag("high")] * 4 + [_flag("low")] * 5, "identity_document") == 15
    assert assess_risks(ID_TEXT, "identity_document") == []

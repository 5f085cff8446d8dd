"""Field and clause review plus JSON/CSV export"""
import pytest

from doc_intelligence.core.exceptions import DocumentNotFoundError
from doc_intelligence.models import DocumentRecord, DocumentStructure, ExtractedClause, ExtractedField
from doc_intelligence.services.export_service import CSV_HEADER, ReviewService, fields_to_csv, find_field_index


def _fields():
    return [
        ExtractedField(field_name="Client", value="Globex Retail Limited", page_number=1, confidence_score=0.85),
        ExtractedField(field_name="Service Provider", value='Acme "Tech", Ltd', page_number=2, confidence_score=0.9),
    ]


@pytest.fixture
def review(storage):
    return ReviewService(storage)


@pytest.fixture
async def document(storage, user):
    doc = await storage.create_document(DocumentRecord(
        user_id=user.id, document_name="MSA", version="2.0", risk_score=40, summary="Contract processed.",
    ))
    await storage.save_structure(DocumentStructure(
        document_id=doc.id,
        extracted_fields=_fields(),
        clauses=[ExtractedClause(id="clause_1", title="Payment", content="Net 30", clause_type="payment")],
    ))
    return doc


def test_find_field_index_prefers_exact_then_substring():
    fields = _fields()
    assert find_field_index(fields, "Client") == 0
    assert find_field_index(fields, "service provider") == 1
    assert find_field_index(fields, "provider") == 1
    assert find_field_index(fields, "Total") == -1


def test_fields_to_csv_quotes_text_columns():
    fields = _fields()
    fields[0].override_value = "Globex Holdings"
    fields[0].reviewed = True

    lines = fields_to_csv(fields).split("\n")

    assert lines[0] == CSV_HEADER
    assert lines[1] == '"Client","Globex Holdings",1,0.85,true'
    assert lines[2] == '"Service Provider","Acme ""Tech"", Ltd",2,0.9,false'


def test_fields_to_csv_writes_json_spelling_for_non_text_values():
    fields = [
        ExtractedField(field_name="Signed", value=True, confidence_score=1.0),
        ExtractedField(field_name="Total", value=1180.0, page_number=3, confidence_score=0.95),
        ExtractedField(field_name="Items", value=["a", "b"]),
    ]

    lines = fields_to_csv(fields).split("\n")

    assert lines[1] == '"Signed","true",1,1,false'
    assert lines[2] == '"Total","1180",3,0.95,false'
    assert lines[3] == '"Items","[""a"", ""b""]",1,0.5,false'


def test_fields_to_csv_empty():
    assert fields_to_csv([]) == CSV_HEADER + "\n"


async def test_review_field_sets_override(review, storage, document, user):
    fields = await review.review_field(user, document.id, "client", override_value="Globex Holdings")

    assert fields[0].override_value == "Globex Holdings"
    assert fields[0].reviewed is True
    stored = await storage.get_structure(document.id)
    assert stored.extracted_fields[0].effective_value == "Globex Holdings"


async def test_review_field_rejection_is_not_reviewed(review, document, user):
    fields = await review.review_field(user, document.id, "Provider", approved=False)
    assert fields[1].reviewed is False


async def test_review_unknown_field_lists_available(review, document, user):
    with pytest.raises(DocumentNotFoundError) as exc_info:
        await review.review_field(user, document.id, "Invoice Number", override_value="X")
    assert exc_info.value.message == "Field not found"
    assert exc_info.value.details['available_fields'] == ["Client", "Service Provider"]


async def test_review_clause(review, document, user):
    clauses = await review.review_clause(user, document.id, "clause_1", override_content="Net 45")
    assert clauses[0].override_content == "Net 45"
    assert clauses[0].reviewed is True

    with pytest.raises(DocumentNotFoundError):
        await review.review_clause(user, document.id, "clause_9")


async def test_export_json(review, document, user):
    filename, payload = await review.export_json(user, document.id)

    assert filename == "MSA_export.json"
    assert payload['document'] == {
        'document_name': "MSA",
        'version': "2.0",
        'document_type': "contract",
        'risk_score': 40,
        'summary': "Contract processed.",
    }
    assert set(payload['structure']) == {
        'sections', 'clauses', 'signatures', 'relationships',
        'cross_references', 'extracted_fields', 'tables',
    }
    assert payload['structure']['clauses'][0]['id'] == "clause_1"


async def test_export_csv(review, document, user):
    filename, body = await review.export_csv(user, document.id)
    assert filename == "MSA_export.csv"
    assert body.splitlines()[1].startswith('"Client","Globex Retail Limited",1,0.85,false')


async def test_export_of_unprocessed_document(review, storage, user):
    doc = await storage.create_document(DocumentRecord(user_id=user.id, document_name="Scan"))

    _, payload = await review.export_json(user, doc.id)
    assert payload['structure'] is None
    _, body = await review.export_csv(user, doc.id)
    assert body == CSV_HEADER + "\n"

    with pytest.raises(DocumentNotFoundError):
        await review.review_field(user, doc.id, "Client")

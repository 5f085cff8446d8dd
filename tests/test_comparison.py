"""Version comparison, multi-document analysis and schema mapping"""
import pytest

from doc_intelligence.core.exceptions import DocumentNotFoundError, ValidationError
from doc_intelligence.models import DocumentRecord, DocumentStructure, ExtractedField, PageText, UserRecord
from doc_intelligence.services.comparison_service import ComparisonService, structure_text


@pytest.fixture
def comparison(storage, ai_service):
    return ComparisonService(storage, ai_service)


@pytest.fixture
def add_document(storage):
    async def _add(user, name, pages, fields=(), version="1.0", with_structure=True):
        doc = await storage.create_document(DocumentRecord(user_id=user.id, document_name=name, version=version))
        if with_structure:
            await storage.save_structure(DocumentStructure(
                document_id=doc.id,
                pages=[PageText(page_number=i + 1, raw_text=text) for i, text in enumerate(pages)],
                extracted_fields=list(fields),
            ))
        return doc
    return _add


def test_structure_text_joins_pages():
    structure = DocumentStructure(document_id="d", pages=[PageText(page_number=1, raw_text="a"),
                                                          PageText(page_number=2, raw_text="b")])
    assert structure_text(structure) == "a\nb"
    assert structure_text(None) == ""


async def test_compare_two_versions(comparison, add_document, user):
    base = await add_document(user, "MSA", ["1. Payment within 30 days\n2. Term of 12 months\n3. Governing law England"])
    revised = await add_document(user, "MSA", ["1. Payment within 45 days\n2. Term of 12 months\n3. Governing law England"],
                                 version="2.0")

    result = await comparison.compare_documents(user, base.id, revised.id)

    assert result.base_document.version == "1.0"
    assert result.comparison_document.version == "2.0"
    assert [d.type for d in result.differences] == ["modification"]
    assert "30" in result.differences[0].original_text
    assert "45" in result.differences[0].new_text


async def test_compare_requires_ownership(comparison, storage, add_document, user):
    base = await add_document(user, "MSA", ["text"])
    stranger = await storage.create_user(UserRecord(name="Sam", email="sam@example.com", password_hash="x"))
    foreign = await add_document(stranger, "Other", ["text"])

    with pytest.raises(DocumentNotFoundError):
        await comparison.compare_documents(user, base.id, foreign.id)


async def test_analyze_passes_text_and_fields(comparison, ai_service, add_document, user):
    first = await add_document(user, "Invoice", ["Invoice INV-1"], fields=[ExtractedField(field_name="Total", value="100")])
    second = await add_document(user, "PO", ["Purchase order PO-7"], with_structure=False)

    result = await comparison.analyze_documents(user, [first.id, second.id])

    assert result.consolidated_summary == "2 documents analyzed"
    by_name = {d['name']: d for d in ai_service.analyzed_documents}
    assert by_name["Invoice"]['text'] == "Invoice INV-1"
    assert by_name["Invoice"]['extracted_fields'] == {"Total": "100"}
    assert by_name["PO"]['text'] == ""
    assert by_name["PO"]['extracted_fields'] == {}


async def test_analyze_needs_two_owned_documents(comparison, add_document, user):
    doc = await add_document(user, "Invoice", ["x"])

    with pytest.raises(ValidationError):
        await comparison.analyze_documents(user, [doc.id])
    with pytest.raises(DocumentNotFoundError):
        await comparison.analyze_documents(user, [doc.id, "missing"])


async def test_schema_mapping_uses_reviewed_values(comparison, ai_service, add_document, user):
    doc = await add_document(user, "Invoice", ["x"], fields=[
        ExtractedField(field_name="Grand Total", value="1180.00", override_value="1200.00", page_number=2),
    ])

    mapping = await comparison.map_document_schema(user, doc.id, "invoice")

    assert mapping.schema_name == "invoice"
    assert [(f.field_name, f.value, f.page_number) for f in ai_service.mapped_fields] == [("Grand Total", "1200.00", 2)]


async def test_schema_mapping_errors(comparison, add_document, user):
    doc = await add_document(user, "Invoice", ["x"])
    bare = await add_document(user, "Scan", [], with_structure=False)

    with pytest.raises(ValidationError):
        await comparison.map_document_schema(user, doc.id, None)
    with pytest.raises(DocumentNotFoundError):
        await comparison.map_document_schema(user, bare.id, "invoice")

"""Question answering: field lookups, context rules and the Gemini fallbacks"""
import pytest

from doc_intelligence.core.exceptions import DocumentNotFoundError, ValidationError
from doc_intelligence.models import (
    Citation, DocumentRecord, DocumentStructure, EmbeddingChunk, ExtractedField, GroundedAnswer,
    PageText, UserRecord
)
from doc_intelligence.services.ai_service import NOT_CONFIGURED_MESSAGE
from doc_intelligence.services.chat_service import (
    ChatService, answer_from_context, answer_from_extracted_fields, page_text_fallback
)

PAYMENT_TEXT = (
    "This Agreement is between Acme Technologies Pvt Ltd and Globex Retail Limited. "
    "Payment is due within Net 30 days from the invoice date. "
    "This agreement is governed by the laws of England and Wales."
)


@pytest.fixture
def chat_service(storage, ai_service, embeddings):
    return ChatService(storage, ai_service, embeddings)


@pytest.fixture
def store_document(storage, embeddings):
    async def _store(user, text=PAYMENT_TEXT, fields=()):
        doc = await storage.create_document(DocumentRecord(
            user_id=user.id, document_name="MSA", status="completed",
        ))
        await storage.save_structure(DocumentStructure(
            document_id=doc.id,
            pages=[PageText(page_number=1, raw_text=text)],
            extracted_fields=list(fields),
        ))
        await storage.replace_embeddings(doc.id, [EmbeddingChunk(
            document_id=doc.id, chunk_id=f"chunk_{doc.id}_0", page_number=1, text=text,
            embedding_vector=embeddings.embed_documents([text])[0],
        )])
        return doc
    return _store


def test_field_answer_prefers_override_value():
    fields = [ExtractedField(field_name="Client", value="Globex", override_value="Globex Holdings", page_number=2)]
    answer = answer_from_extracted_fields("Who is the client?", fields)
    assert answer.answer == "Based on the document: **Client**: Globex Holdings (Page 2)."
    assert answer.page_number == 2


def test_field_answer_spells_out_sex():
    fields = [ExtractedField(field_name="Sex", value="F")]
    answer = answer_from_extracted_fields("What is the gender of the holder?", fields)
    assert answer.answer == "Based on the document: **Sex**: Female (Page 1)."


def test_field_answer_needs_matching_non_empty_field():
    fields = [ExtractedField(field_name="Client", value="  ")]
    assert answer_from_extracted_fields("Who is the client?", fields) is None
    assert answer_from_extracted_fields("What is the total?", fields) is None


def test_context_answers():
    context = f"[Page 3] {PAYMENT_TEXT}"
    parties = answer_from_context("Who are the parties?", context)
    assert parties.answer == (
        "Based on the document: **Parties**: Acme Technologies Pvt Ltd and Globex Retail Limited (Page 3)."
    )
    net_days = answer_from_context("How many net days do we have to pay?", context)
    assert net_days.answer == "Based on the document: **Payment terms**: Net 30 days from invoice date (Page 3)."
    assert answer_from_context("What is the governing law?", context) is None
    assert answer_from_context("Who are the parties?", "short") is None


def test_page_text_fallback_skips_blank_pages():
    structure = DocumentStructure(document_id="d", pages=[
        PageText(page_number=1, raw_text="   "),
        PageText(page_number=2, raw_text="Second page text"),
    ])
    context, citations = page_text_fallback([structure, None])
    assert context == "[Page 2] Second page text"
    assert [c.page_number for c in citations] == [2]
    assert page_text_fallback([None]) == ("", [])


async def test_answers_from_extracted_fields(chat_service, store_document, user):
    doc = await store_document(user, fields=[
        ExtractedField(field_name="Client", value="Globex Retail Limited", page_number=1),
    ])

    response = await chat_service.ask(user, [doc.id], "Who is the client?")

    assert response.message == "Based on the document: **Client**: Globex Retail Limited (Page 1)."
    assert response.confidence == 0.95
    assert response.citations[0].page_number == 1
    assert "**" not in response.citations[0].text


async def test_answers_from_retrieved_context(chat_service, store_document, user):
    doc = await store_document(user)

    response = await chat_service.ask(user, [doc.id], "How many net days until payment is due?")

    assert response.message == "Based on the document: **Payment terms**: Net 30 days from invoice date (Page 1)."
    assert response.confidence == 0.92


async def test_grounded_answer_is_used_when_rules_do_not_apply(chat_service, ai_service, store_document, user):
    ai_service.grounded_answer = GroundedAnswer(
        answer="The laws of England and Wales [Page 1]",
        citations=[Citation(page_number=1, text="governed by the laws of England and Wales")],
        confidence=0.8,
        used_fields=["Governing Law"],
    )
    doc = await store_document(user)

    response = await chat_service.ask(user, [doc.id], "Which law governs this agreement?")

    assert response.message == "The laws of England and Wales [Page 1]"
    assert response.confidence == 0.8
    assert response.used_fields == ["Governing Law"]


async def test_falls_back_to_context_generation(chat_service, ai_service, store_document, user):
    ai_service.context_answer = "England and Wales."
    doc = await store_document(user)

    response = await chat_service.ask(user, [doc.id], "Which law governs this agreement?")

    assert response.message == "England and Wales."
    assert 0.3 <= response.confidence <= 0.95
    assert response.used_fields is None


async def test_unconfigured_model_message(chat_service, store_document, user):
    doc = await store_document(user)

    response = await chat_service.ask(user, [doc.id], "Which law governs this agreement?")

    assert response.message == NOT_CONFIGURED_MESSAGE


async def test_history_is_recorded_per_document(chat_service, store_document, user):
    doc = await store_document(user, fields=[ExtractedField(field_name="Client", value="Globex")])
    other = await store_document(user)

    await chat_service.ask(user, [doc.id], "Who is the client?", risk_mode=True)

    history = await chat_service.history(user, doc.id)
    assert [h.question for h in history] == ["Who is the client?"]
    assert history[0].risk_mode is True
    assert await chat_service.history(user, other.id) == []


async def test_rejects_empty_question_and_foreign_documents(chat_service, storage, store_document, user):
    doc = await store_document(user)
    stranger = await storage.create_user(UserRecord(name="Sam", email="sam@example.com", password_hash="x"))

    with pytest.raises(ValidationError):
        await chat_service.ask(user, [doc.id], "   ")
    with pytest.raises(DocumentNotFoundError):
        await chat_service.ask(stranger, [doc.id], "Who is the client?")
    with pytest.raises(DocumentNotFoundError):
        await chat_service.history(stranger, doc.id)


async def test_question_without_searchable_words_uses_page_text(chat_service, store_document, user):
    doc = await store_document(user)

    response = await chat_service.ask(user, [doc.id], "a ?")

    assert response.message == NOT_CONFIGURED_MESSAGE
    assert response.confidence == 0.6
    assert [c.page_number for c in response.citations] == [1]
    assert response.citations[0].text == PAYMENT_TEXT[:300]

"""
Grounded question answering over a user's documents.

Answers are tried in order of precision: a direct lookup in extracted
fields, regex answers from retrieved context, a Gemini answer with page
citations, and finally a one-sentence Gemini answer over the raw context.
"""
import re
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..config import CHAT_FALLBACK_PAGE_LIMIT, DEFAULT_SEARCH_K
from ..core.exceptions import DocumentNotFoundError, ValidationError
from ..models import ChatHistoryEntry, ChatResponse, Citation, DocumentStructure, ExtractedField, UserRecord
from ..utils.formatting import answer_citation, first_page_reference, format_context_for_llm
from .ai_service import NOT_CONFIGURED_MESSAGE
from .vector_store import vector_search

logger = logging.getLogger(__name__)

FIELD_ANSWER_CONFIDENCE = 0.95
CONTEXT_ANSWER_CONFIDENCE = 0.92
MIN_CONTEXT_LENGTH = 100
MIN_CONTEXT_ANSWER_LENGTH = 50

ONE_SENTENCE_INSTRUCTION = (
    "Answer in ONE short sentence or a single value. Use ONLY the provided document context. "
    "Cite the exact field or phrase. Do NOT repeat the full page text."
)

# Question keywords -> extracted field names that answer them
QUESTION_TO_FIELD = [
    {'keywords': r"\bgender\b|\bsex\b|male\?|female\?|what\s+is\s+(the\s+)?(person'?s\s+)?gender",
     'field_names': ["Sex", "Gender"]},
    {'keywords': r"\bname\b|person'?s\s+name|customer\s+name",
     'field_names': ["Name", "Customer Name"]},
    {'keywords': r"who\s+is\s+the\s+client|who\s+is\s+client|name\s+of\s+client",
     'field_names': ["Client"]},
    {'keywords': r"who\s+is\s+the\s+service\s+provider|who\s+is\s+service\s+provider|name\s+of\s+service\s+provider",
     'field_names': ["Service Provider"]},
    {'keywords': r"who\s+is\s+(?:the\s+)?(?:vendor|provider|seller)",
     'field_names': ["Service Provider", "Vendor"]},
    {'keywords': r"who\s+is\s+(?:the\s+)?(?:buyer|recipient)",
     'field_names': ["Client", "Bill To"]},
    {'keywords': r"what\s+are\s+the\s+parties|who\s+are\s+the\s+parties|list\s+(?:the\s+)?parties",
     'field_names': ["Parties"]},
    {'keywords': r"\b(?:date\s+of\s+birth|dob|birth\s+date|born)\b",
     'field_names': ["Date of Birth", "DOB"]},
    {'keywords': r"\bexpir(?:y|ation)|valid\s+until|expires\b",
     'field_names': ["Expiry", "Date of Expiry", "Expiration"]},
    {'keywords': r"\blicen[sc]e\s*(?:number|no\.?)|customer\s*number|id\s*number",
     'field_names': ["License Number", "Customer Number"]},
]

_PARTIES_QUESTION = re.compile(r"what\s+are\s+the\s+parties|who\s+are\s+the\s+parties|list\s+(?:the\s+)?parties", re.IGNORECASE)
_CLIENT_QUESTION = re.compile(r"who\s+is\s+the\s+client|who\s+is\s+client|name\s+of\s+client", re.IGNORECASE)
_NET_DAYS_QUESTION = re.compile(r"how\s+many\s+net\s+days|net\s+(\d+)\s+days|payment\s+terms\s*[:\s]*\d+", re.IGNORECASE)

_BETWEEN_PARTIES = re.compile(r"between\s+([^.]{10,200}?)(?:\.|$)", re.IGNORECASE)
_PROVIDER_CLIENT_SENTENCE = re.compile(r"([^.]{10,200}?(?:Provider|Client)[^.]{0,80})", re.IGNORECASE)
_CLIENT_NAME = re.compile(
    r"(?:between\s+)?([A-Za-z0-9\s.,&]+(?:Pvt\.?|Private|Limited|Ltd\.?|Inc\.?|LLC)?)\s*\(\s*[\"']?Client[\"']?\s*\)",
    re.IGNORECASE,
)
_NET_DAYS = re.compile(r"(?:within\s+)?Net\s*(\d+)\s*days", re.IGNORECASE)
_PAYMENT_TERMS_DAYS = re.compile(r"payment\s+terms[^.]*?(\d+)\s*days", re.IGNORECASE)
_AGREEMENT_PREFIX = re.compile(r"^this\s+agreement\s+is\s+between\s+", re.IGNORECASE)
_LEADING_BETWEEN = re.compile(r"^\s*between\s+", re.IGNORECASE)


@dataclass
class RuleAnswer:
    """A deterministic answer and the page it came from"""
    answer: str
    page_number: int = 1


def _display_value(value: str) -> str:
    if re.fullmatch(r"[MF]", value, re.IGNORECASE):
        return "Female" if value.upper() == "F" else "Male"
    return value


def answer_from_extracted_fields(question: str, fields: List[ExtractedField]) -> Optional[RuleAnswer]:
    for rule in QUESTION_TO_FIELD:
        if not re.search(rule['keywords'], question, re.IGNORECASE):
            continue
        wanted = {name.lower() for name in rule['field_names']}
        for f in fields:
            name = (f.field_name or "").strip()
            value = f.effective_value
            if name.lower() in wanted and value is not None and str(value).strip():
                page = f.page_number or 1
                display = _display_value(str(value).strip())
                return RuleAnswer(f"Based on the document: **{name}**: {display} (Page {page}).", page)
    return None


def answer_from_context(question: str, context: str) -> Optional[RuleAnswer]:
    if not context or len(context) < 20:
        return None
    page = first_page_reference(context)

    if _PARTIES_QUESTION.search(question):
        match = _BETWEEN_PARTIES.search(context) or _PROVIDER_CLIENT_SENTENCE.search(context)
        if match:
            parties = re.sub(r"\s+", " ", match.group(1).strip())
            parties = _AGREEMENT_PREFIX.sub("", parties).strip()[:180]
            return RuleAnswer(f"Based on the document: **Parties**: {parties} (Page {page}).", page)

    if _CLIENT_QUESTION.search(question):
        match = _CLIENT_NAME.search(context)
        if match:
            name = _LEADING_BETWEEN.sub("", match.group(1).strip()).strip()
            return RuleAnswer(f"Based on the document: **Client**: {name} (Page {page}).", page)

    if _NET_DAYS_QUESTION.search(question):
        match = _NET_DAYS.search(context) or _PAYMENT_TERMS_DAYS.search(context)
        if match:
            return RuleAnswer(
                f"Based on the document: **Payment terms**: Net {match.group(1)} days from invoice date (Page {page}).",
                page,
            )
    return None


def page_text_fallback(structures: List[Optional[DocumentStructure]]) -> Tuple[str, List[Citation]]:
    """Raw page text as context when retrieval finds too little"""
    parts = []
    for structure in structures:
        if not structure:
            continue
        for page in structure.pages:
            if page.raw_text.strip():
                parts.append(Citation(page_number=page.page_number, text=page.raw_text[:CHAT_FALLBACK_PAGE_LIMIT]))
    if not parts:
        return "", []
    context = format_context_for_llm(parts)
    citations = [Citation(page_number=p.page_number, text=p.text[:300]) for p in parts[:5]]
    return context, citations


class ChatService:
    """Answers questions about a user's documents and records the exchange"""

    def __init__(self, storage, ai_service, embeddings, vector_store=None):
        self.storage = storage
        self.ai_service = ai_service
        self.embeddings = embeddings
        self.vector_store = vector_store

    async def ask(self, user: UserRecord, document_ids: List[str], message: str,
                  risk_mode: bool = False) -> ChatResponse:
        if not (message or "").strip():
            raise ValidationError("Message required")

        docs = []
        for doc_id in dict.fromkeys(document_ids):
            doc = await self.storage.get_user_document(doc_id, user.id)
            if doc:
                docs.append(doc)
        if not docs:
            raise DocumentNotFoundError()

        ids = [d.id for d in docs]
        structures = [await self.storage.get_structure(doc_id) for doc_id in ids]

        all_fields = [f for s in structures if s for f in s.extracted_fields]
        field_answer = answer_from_extracted_fields(message, all_fields)
        if field_answer:
            logger.info(f"💬 Answered from extracted fields for documents {ids}")
            return await self._record(user, ids, message, field_answer.answer,
                                      answer_citation(field_answer.answer, field_answer.page_number),
                                      FIELD_ANSWER_CONFIDENCE, risk_mode)

        results = await vector_search(ids, message, self.storage, self.embeddings,
                                      self.vector_store, top_k=DEFAULT_SEARCH_K)
        context = format_context_for_llm(results)
        citations = [Citation(page_number=r.page_number, text=r.text[:300]) for r in results]

        if len(context) < MIN_CONTEXT_LENGTH:
            fallback_context, fallback_citations = page_text_fallback(structures)
            if fallback_context:
                context, citations = fallback_context, fallback_citations

        context_answer = answer_from_context(message, context) if len(context) > MIN_CONTEXT_ANSWER_LENGTH else None
        if context_answer:
            logger.info(f"💬 Answered from retrieved context for documents {ids}")
            return await self._record(user, ids, message, context_answer.answer,
                                      answer_citation(context_answer.answer, context_answer.page_number),
                                      CONTEXT_ANSWER_CONFIDENCE, risk_mode)

        grounded = await asyncio.to_thread(self.ai_service.generate_with_grounded_citations, message, citations)
        if grounded and grounded.answer:
            return await self._record(user, ids, message, grounded.answer, grounded.citations,
                                      grounded.confidence, risk_mode, used_fields=grounded.used_fields)

        answer = await asyncio.to_thread(
            self.ai_service.generate_with_context,
            message, context or "No content extracted yet.", ONE_SENTENCE_INSTRUCTION,
        )
        if not answer:
            answer = NOT_CONFIGURED_MESSAGE

        if results:
            confidence = min(0.95, 0.5 + results[0].score * 0.5)
        else:
            confidence = 0.6 if len(context) > MIN_CONTEXT_LENGTH else 0.3

        return await self._record(user, ids, message, answer, citations, confidence, risk_mode)

    async def _record(self, user: UserRecord, document_ids: List[str], question: str, answer: str,
                      citations: List[Citation], confidence: float, risk_mode: bool,
                      used_fields: Optional[List[str]] = None) -> ChatResponse:
        await self.storage.add_chat_entry(ChatHistoryEntry(
            user_id=user.id,
            document_ids=document_ids,
            question=question,
            answer=answer,
            citations=citations,
            confidence=confidence,
            risk_mode=risk_mode,
        ))
        return ChatResponse(message=answer, citations=citations, confidence=confidence, used_fields=used_fields)

    async def history(self, user: UserRecord, document_id: str) -> List[ChatHistoryEntry]:
        doc = await self.storage.get_user_document(document_id, user.id)
        if doc is None:
            raise DocumentNotFoundError()
        return await self.storage.get_chat_history(document_id, user.id)

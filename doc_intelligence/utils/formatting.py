"""Formatting utilities"""
import re
from typing import Any, Iterable, List, Optional

from ..models import Citation, DocumentType


def format_context_for_llm(items: Iterable[Any]) -> str:
    """Join retrieval hits (anything with page_number/text) as '[Page N] text' blocks"""
    return "\n\n".join(f"[Page {item.page_number}] {item.text}" for item in items)


def document_type_label(document_type: Optional[str]) -> str:
    """Human readable label used in generated summaries"""
    if document_type == DocumentType.IDENTITY_DOCUMENT.value:
        return "Identity document"
    if document_type == DocumentType.INVOICE.value:
        return "Invoice"
    if document_type and document_type != DocumentType.UNKNOWN.value:
        return document_type[:1].upper() + document_type[1:].replace("_", " ")
    return "Document"


def build_processing_summary(document_type: Optional[str], sections: int, clauses: int,
                             fields: int, tables: int) -> str:
    return (
        f"{document_type_label(document_type)} processed. {sections} sections, "
        f"{clauses} clauses, {fields} fields, {tables} table(s) detected."
    )


def strip_markdown_bold(text: str) -> str:
    return text.replace("**", "")


def answer_citation(answer: str, page_number: int) -> List[Citation]:
    """Single citation quoting a short rule-based answer"""
    return [Citation(page_number=page_number, text=strip_markdown_bold(answer)[:200])]


def first_page_reference(context: str) -> int:
    match = re.search(r"\[Page\s+(\d+)\]", context or "")
    return int(match.group(1)) if match else 1


def csv_escape(value: Any) -> str:
    return '"' + str(value).replace('"', '""') + '"'

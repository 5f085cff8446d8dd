"""Utilities package"""
from .text_processing import correct_ocr_text, chunk_text, normalize_key, alphanumeric_count
from .text_diff import simple_text_diff, describe_line_change
from .formatting import (
    format_context_for_llm,
    document_type_label,
    build_processing_summary,
    strip_markdown_bold,
    answer_citation,
    first_page_reference,
    csv_escape
)

__all__ = [
    'correct_ocr_text',
    'chunk_text',
    'normalize_key',
    'alphanumeric_count',
    'format_context_for_llm',
    'document_type_label',
    'build_processing_summary',
    'strip_markdown_bold',
    'answer_citation',
    'first_page_reference',
    'csv_escape',
    'simple_text_diff',
    'describe_line_change'
]

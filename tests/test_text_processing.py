"""Chunking, OCR clean-up and key normalization"""
from doc_intelligence.utils.text_processing import (
    alphanumeric_count, chunk_text, correct_ocr_text, normalize_key
)
from doc_intelligence.utils.formatting import (
    answer_citation, build_processing_summary, csv_escape, first_page_reference, format_context_for_llm
)
from doc_intelligence.services.vector_store import SearchResult


def test_short_text_is_a_single_chunk():
    chunks = chunk_text("  Payment is due within 30 days.  ", 3)
    assert chunks == [{'text': "Payment is due within 30 days.", 'page_number': 3}]


def test_empty_text_has_no_chunks():
    assert chunk_text("", 1) == []
    assert chunk_text("    ", 1) == []


def test_long_text_is_cut_at_word_boundaries_with_overlap():
    text = " ".join(f"word{i:03d}" for i in range(300))
    chunks = chunk_text(text, 1)

    assert len(chunks) > 1
    assert all(len(c['text']) <= 800 for c in chunks)
    # Cut at a space, so no chunk ends mid-word
    for c in chunks[:-1]:
        assert c['text'].split()[-1].startswith("word")
        assert len(c['text'].split()[-1]) == 7
    # Consecutive chunks share text
    first_tail = chunks[0]['text'][-50:]
    assert first_tail in chunks[1]['text']
    assert chunks[-1]['text'].endswith("word299")


def test_text_without_spaces_uses_hard_cuts():
    text = "x" * 2000
    chunks = chunk_text(text, 1)
    assert [len(c['text']) for c in chunks] == [800, 800, 600]


def test_ocr_corrections():
    assert correct_ocr_text("Acme Technatogees Pot Lod") == "Acme Technologies Pvt Ltd"
    assert correct_ocr_text("Payert Terma:   Net 10 Says") == "Payment Terms: Net 30 Days"
    assert correct_ocr_text("short  x") == "short  x"


def test_normalize_key():
    assert normalize_key("Payment Terms!") == "paymentterms"
    assert normalize_key("A" * 80) == "a" * 50
    assert normalize_key(None) == ""


def test_alphanumeric_count():
    assert alphanumeric_count("a-b c_1!") == 4


def test_context_formatting_and_citations():
    results = [SearchResult(chunk_id="c1", text="First", page_number=2),
               SearchResult(chunk_id="c2", text="Second", page_number=5)]
    context = format_context_for_llm(results)
    assert context == "[Page 2] First\n\n[Page 5] Second"
    assert first_page_reference(context) == 2
    assert first_page_reference("no markers") == 1

    citation = answer_citation("Based on the document: **Name**: Jo (Page 2).", 2)[0]
    assert citation.page_number == 2
    assert "**" not in citation.text


def test_summary_and_csv_helpers():
    assert build_processing_summary("identity_document", 1, 0, 4, 0) == (
        "Identity document processed. 1 sections, 0 clauses, 4 fields, 0 table(s) detected."
    )
    assert build_processing_summary("purchase_order", 2, 1, 3, 1).startswith("Purchase order processed.")
    assert csv_escape('say "hi"') == '"say ""hi"""'

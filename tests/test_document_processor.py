"""PDF strategy ordering and OCR fallbacks"""
import pytest

from doc_intelligence.config import FeatureFlags
from doc_intelligence.core.exceptions import DocumentProcessingError
from doc_intelligence.services.document_processor import DocumentProcessor


class StubbedProcessor(DocumentProcessor):
    """Processor whose strategies return canned pages"""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    def _pdf_strategies(self):
        return [(name, self._handler(name), available) for name, available, _ in self.outcomes]

    def _handler(self, name):
        def handle(content):
            self.calls.append(name)
            result = next(outcome for n, _, outcome in self.outcomes if n == name)
            if isinstance(result, Exception):
                raise result
            return result
        return handle


def test_first_strategy_with_text_wins():
    processor = StubbedProcessor([
        ("pymupdf", True, ["", ""]),
        ("pdfplumber", True, ["Page one", "Page two"]),
        ("ocr", True, ["never used"]),
    ])
    result = processor.extract_pdf_pages(b"%PDF")

    assert processor.calls == ["pymupdf", "pdfplumber"]
    assert result.method == "pdfplumber"
    assert result.pages == ["Page one", "Page two"]
    assert result.full_text == "Page one\nPage two"
    assert result.warnings == ["Method 'pymupdf' produced no content."]


def test_unavailable_and_failing_strategies_are_skipped():
    processor = StubbedProcessor([
        ("pymupdf", False, ["skipped"]),
        ("pdfplumber", True, ValueError("bad xref")),
        ("ocr", True, ["Scanned text"]),
    ])
    result = processor.extract_pdf_pages(b"%PDF")

    assert processor.calls == ["pdfplumber", "ocr"]
    assert result.method == "ocr"
    assert "Method 'pdfplumber' failed: bad xref" in result.warnings


def test_text_free_pdf_gives_empty_pages():
    processor = StubbedProcessor([("pymupdf", True, ["", " "]), ("ocr", False, [])])
    result = processor.extract_pdf_pages(b"%PDF")
    assert result.pages == ["", ""]
    assert result.page_count == 2
    assert result.method is None


def test_no_working_strategy_raises():
    processor = StubbedProcessor([("pymupdf", False, []), ("pdfplumber", True, RuntimeError("boom"))])
    with pytest.raises(DocumentProcessingError):
        processor.extract_pdf_pages(b"%PDF")


def test_image_ocr_unavailable_gives_empty_text(monkeypatch):
    monkeypatch.setattr(FeatureFlags, "OCR_AVAILABLE", False)
    assert DocumentProcessor().extract_image_text(b"\x89PNG") == ""


def test_pymupdf_reads_real_pdf(monkeypatch):
    fitz = pytest.importorskip("fitz")
    monkeypatch.setattr(FeatureFlags, "PYMUPDF_AVAILABLE", True)

    pdf = fitz.open()
    for text in ("Invoice Number: INV-7", "Grand Total: 99.00"):
        page = pdf.new_page()
        page.insert_text((72, 72), text)
    content = pdf.tobytes()
    pdf.close()

    result = DocumentProcessor().extract_pdf_pages(content)

    assert result.method == "pymupdf"
    assert result.page_count == 2
    assert "INV-7" in result.pages[0]
    assert "99.00" in result.pages[1]

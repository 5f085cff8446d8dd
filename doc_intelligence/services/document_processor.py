"""
Text extraction for uploaded PDFs and images using the Strategy design pattern.

PDF strategies are tried in order of preference (PyMuPDF, pdfplumber, OCR);
the first one that yields any text wins. Images go through Tesseract OCR.
"""
import io
import logging
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..config import FeatureFlags
from ..core.exceptions import DocumentProcessingError

logger = logging.getLogger(__name__)


class ProcessingResult(BaseModel):
    """Per-page text extracted from a document"""
    pages: List[str] = Field(default_factory=list)
    page_count: int = Field(0, ge=0)
    method: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    @property
    def full_text(self) -> str:
        return "\n".join(self.pages)


class DocumentProcessor:
    """
    Extracts text from PDFs and images.

    Usage:
        processor = DocumentProcessor()
        result = processor.extract_pdf_pages(pdf_bytes)
        text = processor.extract_image_text(png_bytes)
    """

    def _pdf_strategies(self) -> List[Tuple[str, Callable[[bytes], List[str]], bool]]:
        # Availability is read at call time; flags are filled during app startup
        return [
            ("pymupdf", self._pdf_handler_pymupdf, FeatureFlags.PYMUPDF_AVAILABLE),
            ("pdfplumber", self._pdf_handler_pdfplumber, FeatureFlags.PDFPLUMBER_AVAILABLE),
            ("ocr", self._pdf_handler_ocr, FeatureFlags.OCR_AVAILABLE),
        ]

    def extract_pdf_pages(self, content: bytes) -> ProcessingResult:
        """
        Iterates through PDF strategies until one produces text.

        Raises DocumentProcessingError when no strategy is available or every
        available strategy raised. A strategy that runs but finds no text
        leads to an empty result rather than an error.
        """
        warnings = []
        ran_any = False
        page_count = 0

        for name, handler, is_available in self._pdf_strategies():
            if not is_available:
                logger.debug(f"Skipping PDF processing with '{name}' (not available).")
                continue
            try:
                logger.debug(f"Attempting PDF processing with '{name}'")
                pages = handler(content)
                ran_any = True
                page_count = max(page_count, len(pages))
                if any(p.strip() for p in pages):
                    logger.info(f"✅ Extracted {len(pages)} pages with '{name}'")
                    return ProcessingResult(pages=pages, page_count=len(pages), method=name, warnings=warnings)
                warnings.append(f"Method '{name}' produced no content.")
            except Exception as e:
                logger.warning(f"PDF processing with '{name}' failed: {e}")
                warnings.append(f"Method '{name}' failed: {e}")

        if not ran_any:
            raise DocumentProcessingError("All available PDF processing methods failed.")

        logger.warning("⚠️ PDF contains no extractable text")
        return ProcessingResult(pages=[""] * page_count, page_count=page_count, warnings=warnings)

    def extract_image_text(self, content: bytes) -> str:
        """OCR an image. Any failure is logged and treated as no text."""
        if not FeatureFlags.OCR_AVAILABLE:
            logger.warning("⚠️ OCR not available, image text left empty")
            return ""
        try:
            import pytesseract
            from PIL import Image

            with Image.open(io.BytesIO(content)) as image:
                return pytesseract.image_to_string(image, lang="eng") or ""
        except Exception as e:
            logger.error(f"Image OCR failed: {e}")
            return ""

    # --- PDF Strategy Implementations ---

    def _pdf_handler_pymupdf(self, content: bytes) -> List[str]:
        import fitz  # PyMuPDF
        with fitz.open(stream=content, filetype="pdf") as doc:
            return [page.get_text() for page in doc]

    def _pdf_handler_pdfplumber(self, content: bytes) -> List[str]:
        import pdfplumber
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            return [page.extract_text() or "" for page in pdf.pages]

    def _pdf_handler_ocr(self, content: bytes) -> List[str]:
        from pdf2image import convert_from_bytes
        import pytesseract

        images = convert_from_bytes(content, dpi=300)
        return [pytesseract.image_to_string(image, lang="eng") or "" for image in images]

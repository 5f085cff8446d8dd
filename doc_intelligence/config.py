"""Configuration and environment variables"""
import os
import logging
from typing import List

logger = logging.getLogger(__name__)

APP_TITLE = os.environ.get("APP_TITLE", "Document Intelligence API")

# Gemini
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_FALLBACK_MODELS: List[str] = [
    "gemini-1.5-pro",
    "gemini-1.5-flash",
]

# Persistence
MONGODB_URL = os.environ.get("MONGODB_URL", "")
MONGODB_DATABASE = os.environ.get("MONGODB_DATABASE", "document_intelligence")
MONGODB_TIMEOUT_MS = int(os.environ.get("MONGODB_TIMEOUT_MS", "3000"))

# Vector store: CHROMA_URL (http server) wins over CHROMA_PERSIST_DIR (embedded)
CHROMA_URL = os.environ.get("CHROMA_URL", "")
CHROMA_PERSIST_DIR = os.environ.get("CHROMA_PERSIST_DIR", "")
CHROMA_COLLECTION = os.environ.get("CHROMA_COLLECTION", "doc_chunks")

# "local" = 64-dim hashed bag of words, "huggingface" = sentence-transformers
EMBEDDING_BACKEND = os.environ.get("EMBEDDING_BACKEND", "local").lower()
EMBEDDING_MODEL = os.environ.get("EMBEDDING_MODEL", "all-MiniLM-L6-v2")
LOCAL_EMBEDDING_DIM = 64

# Auth
JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "document-intelligence-secret-change-in-production")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))

# File handling
UPLOAD_DIR = os.path.abspath(os.environ.get("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads")))
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
}

# Chunking
CHUNK_SIZE = 800
CHUNK_OVERLAP = 100

# Search
DEFAULT_SEARCH_K = 5
MIN_RELEVANCE_SCORE = 0.1

# Prompt input limits (characters)
STRUCTURE_PROMPT_LIMIT = 32000
SEMANTIC_RISK_INPUT_LIMIT = 5000
COMPARE_PROMPT_LIMIT = 12000
MULTI_DOC_TEXT_LIMIT = 3000
CHAT_FALLBACK_PAGE_LIMIT = 4000


class FeatureFlags:
    AI_ENABLED: bool = bool(GEMINI_API_KEY)
    PYMUPDF_AVAILABLE: bool = False
    PDFPLUMBER_AVAILABLE: bool = False
    OCR_AVAILABLE: bool = False
    CHROMA_AVAILABLE: bool = False
    MONGODB_CONFIGURED: bool = bool(MONGODB_URL)


def initialize_feature_flags():
    """Probe optional document/vector libraries and record what is usable"""
    try:
        import fitz  # noqa: F401
        FeatureFlags.PYMUPDF_AVAILABLE = True
        logger.info("✅ PyMuPDF available")
    except ImportError:
        logger.warning("⚠️ PyMuPDF not available")

    try:
        import pdfplumber  # noqa: F401
        FeatureFlags.PDFPLUMBER_AVAILABLE = True
        logger.info("✅ pdfplumber available")
    except ImportError:
        logger.warning("⚠️ pdfplumber not available")

    try:
        import pytesseract
        import pdf2image  # noqa: F401
        pytesseract.get_tesseract_version()
        FeatureFlags.OCR_AVAILABLE = True
        logger.info("✅ Tesseract OCR available")
    except Exception as e:
        logger.warning(f"⚠️ OCR not available: {e}")

    if CHROMA_URL or CHROMA_PERSIST_DIR:
        try:
            import langchain_chroma  # noqa: F401
            FeatureFlags.CHROMA_AVAILABLE = True
            logger.info("✅ Chroma vector store configured")
        except ImportError:
            logger.warning("⚠️ Chroma configured but langchain-chroma is not installed")

    FeatureFlags.AI_ENABLED = bool(GEMINI_API_KEY)
    if not FeatureFlags.AI_ENABLED:
        logger.warning("⚠️ GEMINI_API_KEY not set - AI extraction disabled, heuristics only")

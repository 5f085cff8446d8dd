# doc_intelligence/api/routers/health.py
"""Health check endpoints"""
import logging
from datetime import datetime
from fastapi import APIRouter, Depends

from ...config import FeatureFlags
from ...core.dependencies import get_storage

logger = logging.getLogger(__name__)

router = APIRouter()

def _features() -> dict:
    return {
        "ai_enabled": FeatureFlags.AI_ENABLED,
        "ocr_available": FeatureFlags.OCR_AVAILABLE,
        "pymupdf_available": FeatureFlags.PYMUPDF_AVAILABLE,
        "pdfplumber_available": FeatureFlags.PDFPLUMBER_AVAILABLE,
        "chroma_available": FeatureFlags.CHROMA_AVAILABLE,
    }

@router.get("/health")
async def health_check():
    """Basic health check endpoint"""
    return {"status": "healthy", "features": _features()}

@router.get("/health/detailed")
async def detailed_health_check(storage=Depends(get_storage)):
    """Detailed health check with storage status"""
    try:
        stats = await storage.get_stats()
        storage_status = "healthy"
    except Exception as e:
        logger.error(f"❌ Storage health check failed: {e}")
        stats = {}
        storage_status = f"error: {str(e)}"

    return {
        "status": "healthy" if storage_status == "healthy" else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "components": {
            "storage_backend": getattr(storage, "backend_name", "unknown"),
            "storage": storage_status,
            "counts": stats,
        },
        "features": _features(),
    }

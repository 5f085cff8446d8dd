"""Main FastAPI application entry point"""
import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import APP_TITLE, MAX_FILE_SIZE, UPLOAD_DIR, FeatureFlags, initialize_feature_flags
from .core.dependencies import get_storage, reset_services, set_storage
from .core.exceptions import DocumentIntelligenceException
from .storage.managers import initialize_storage
from .api.errors import domain_exception_handler, unhandled_exception_handler
from .api.routers import analysis, auth, chat, documents, export, health, review, risk

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Multipart bodies carry some framing on top of the file itself
REQUEST_SIZE_LIMIT = MAX_FILE_SIZE + 1024 * 1024

@asynccontextmanager
async def lifespan(app: FastAPI):
    """App lifespan manager: feature checks, upload directory and storage"""
    logger.info("🚀 Document Intelligence API starting up...")
    initialize_feature_flags()
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    logger.info(f"Using UPLOAD_DIR: {UPLOAD_DIR}")

    storage = await initialize_storage()
    set_storage(storage)
    app.state.storage_backend = storage.backend_name
    if storage.backend_name == "memory":
        logger.warning("⚠️ BASIC MODE: documents are kept in memory and lost on restart")

    yield  # App runs here

    logger.info("👋 Document Intelligence API shutting down...")
    try:
        await get_storage().close()
        logger.info("🔌 Storage connections closed")
    except Exception as e:
        logger.error(f"Error during storage cleanup: {e}")
    reset_services()

app = FastAPI(
    title=APP_TITLE,
    description="Layout-aware extraction, risk scoring and grounded chat over uploaded documents",
    version=__version__,
    lifespan=lifespan
)

# Request size limit middleware
@app.middleware("http")
async def limit_request_size(request: Request, call_next):
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > REQUEST_SIZE_LIMIT:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(DocumentIntelligenceException, domain_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Include routers; the fixed /compare and /analyze paths go before /{document_id}
app.include_router(health.router, tags=["health"])
app.include_router(auth.router, tags=["auth"])
app.include_router(analysis.router, tags=["analysis"])
app.include_router(documents.router, tags=["documents"])
app.include_router(chat.router, tags=["chat"])
app.include_router(risk.router, tags=["risk"])
app.include_router(review.router, tags=["review"])
app.include_router(export.router, tags=["export"])

def create_app():
    """Application factory"""
    return app

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    logger.info(f"🚀 Starting Document Intelligence API on port {port}")
    logger.info(f"AI Status: {'ENABLED' if FeatureFlags.AI_ENABLED else 'DISABLED - Set GEMINI_API_KEY to enable'}")
    uvicorn.run("doc_intelligence.main:app", host="0.0.0.0", port=port, reload=True)

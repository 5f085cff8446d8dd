"""Dependency injection and initialization"""
import logging
from typing import Optional

from fastapi import Depends

from ..config import FeatureFlags

logger = logging.getLogger(__name__)

# Global instances
storage = None
ai_service = None
document_processor = None
embeddings = None
vector_store = None

def set_storage(instance):
    global storage
    storage = instance

def get_storage():
    """Get the active storage backend (memory until startup connects MongoDB)"""
    global storage
    if storage is None:
        from ..storage.managers import InMemoryStorage
        storage = InMemoryStorage()
    return storage

def get_ai_service():
    """Get the Gemini service instance"""
    global ai_service
    if ai_service is None:
        from ..services.ai_service import GeminiService
        ai_service = GeminiService()
    return ai_service

def get_document_processor():
    """Get the document processor instance"""
    global document_processor
    if document_processor is None:
        from ..services.document_processor import DocumentProcessor
        document_processor = DocumentProcessor()
    return document_processor

def get_embeddings():
    """Get embeddings instance"""
    global embeddings
    if embeddings is None:
        from ..services.embedding_service import get_embedding_function
        embeddings = get_embedding_function()
    return embeddings

def get_vector_store() -> Optional[object]:
    """Get the Chroma store, or None when only linear-scan search is available"""
    global vector_store
    if vector_store is None and FeatureFlags.CHROMA_AVAILABLE:
        from ..services.vector_store import create_vector_store
        vector_store = create_vector_store(get_embeddings())
    return vector_store

def get_pipeline(
    storage=Depends(get_storage),
    ai_service=Depends(get_ai_service),
    processor=Depends(get_document_processor),
    embeddings=Depends(get_embeddings),
    vector_store=Depends(get_vector_store),
):
    """Document pipeline bound to the injected services"""
    from ..services.pipeline import DocumentPipeline
    return DocumentPipeline(
        storage=storage,
        ai_service=ai_service,
        processor=processor,
        embeddings=embeddings,
        vector_store=vector_store,
    )

def get_chat_service(
    storage=Depends(get_storage),
    ai_service=Depends(get_ai_service),
    embeddings=Depends(get_embeddings),
    vector_store=Depends(get_vector_store),
):
    from ..services.chat_service import ChatService
    return ChatService(storage, ai_service, embeddings, vector_store)

def get_comparison_service(storage=Depends(get_storage), ai_service=Depends(get_ai_service)):
    from ..services.comparison_service import ComparisonService
    return ComparisonService(storage, ai_service)

def get_review_service(storage=Depends(get_storage)):
    from ..services.export_service import ReviewService
    return ReviewService(storage)

def reset_services():
    """Drop cached service instances (used on shutdown and in tests)"""
    global storage, ai_service, document_processor, embeddings, vector_store
    storage = None
    ai_service = None
    document_processor = None
    embeddings = None
    vector_store = None

"""Core functionality package"""
from .dependencies import (
    get_storage,
    set_storage,
    get_ai_service,
    get_document_processor,
    get_embeddings,
    get_vector_store,
    get_pipeline,
    get_chat_service,
    get_comparison_service,
    get_review_service,
    reset_services
)
from .security import get_current_user, security
from .exceptions import (
    DocumentIntelligenceException,
    DocumentProcessingError,
    DocumentNotFoundError,
    ValidationError,
    AuthenticationError,
    StorageError
)

__all__ = [
    'get_storage',
    'set_storage',
    'get_ai_service',
    'get_document_processor',
    'get_embeddings',
    'get_vector_store',
    'get_pipeline',
    'get_chat_service',
    'get_comparison_service',
    'get_review_service',
    'reset_services',
    'get_current_user',
    'security',
    'DocumentIntelligenceException',
    'DocumentProcessingError',
    'DocumentNotFoundError',
    'ValidationError',
    'AuthenticationError',
    'StorageError'
]

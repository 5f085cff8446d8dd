"""Services package"""
from .ai_service import GeminiService, NOT_CONFIGURED_MESSAGE
from .document_processor import DocumentProcessor, ProcessingResult
from .embedding_service import LocalHashEmbeddings, get_embedding_function, local_embed, cosine_similarity
from .vector_store import ChromaVectorStore, SearchResult, vector_search
from .pipeline import DocumentPipeline, PipelineResult, run_document_pipeline
from .chat_service import ChatService
from .comparison_service import ComparisonService
from .export_service import ReviewService

__all__ = [
    'GeminiService',
    'NOT_CONFIGURED_MESSAGE',
    'DocumentProcessor',
    'ProcessingResult',
    'LocalHashEmbeddings',
    'get_embedding_function',
    'local_embed',
    'cosine_similarity',
    'ChromaVectorStore',
    'SearchResult',
    'vector_search',
    'DocumentPipeline',
    'PipelineResult',
    'run_document_pipeline',
    'ChatService',
    'ComparisonService',
    'ReviewService'
]

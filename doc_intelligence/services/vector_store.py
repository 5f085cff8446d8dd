"""
Vector retrieval over document chunks.

Chroma (through langchain-chroma) is used when a server URL or a persist
directory is configured. Otherwise, or when Chroma has nothing for the
query, search falls back to a linear cosine scan over the embeddings kept
in the storage layer.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from langchain_core.embeddings import Embeddings

from ..config import (
    CHROMA_COLLECTION, CHROMA_PERSIST_DIR, CHROMA_URL, DEFAULT_SEARCH_K,
    MIN_RELEVANCE_SCORE, FeatureFlags
)
from ..models import EmbeddingChunk
from .embedding_service import cosine_similarity

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """A retrieved chunk with its similarity score"""
    chunk_id: str
    text: str
    page_number: int = 1
    section_title: Optional[str] = None
    score: float = 0.0


def _document_filter(document_ids: List[str]) -> Dict[str, Any]:
    if len(document_ids) == 1:
        return {"document_id": document_ids[0]}
    return {"document_id": {"$in": list(document_ids)}}


class ChromaVectorStore:
    """Thin wrapper around a single langchain Chroma collection shared by all documents"""

    def __init__(self, embeddings: Embeddings, collection_name: str = CHROMA_COLLECTION,
                 url: str = CHROMA_URL, persist_directory: str = CHROMA_PERSIST_DIR):
        from langchain_chroma import Chroma

        self.embeddings = embeddings
        if url:
            import chromadb

            parsed = urlparse(url)
            client = chromadb.HttpClient(
                host=parsed.hostname or "localhost",
                port=parsed.port or 8000,
                ssl=parsed.scheme == "https",
            )
            self.db = Chroma(
                client=client,
                collection_name=collection_name,
                embedding_function=embeddings,
                collection_metadata={"hnsw:space": "cosine"},
            )
            logger.info(f"✅ Connected to Chroma server at {url}")
        else:
            self.db = Chroma(
                collection_name=collection_name,
                embedding_function=embeddings,
                persist_directory=persist_directory or None,
                collection_metadata={"hnsw:space": "cosine"},
            )
            logger.info(f"✅ Using embedded Chroma collection '{collection_name}'")

    def add_chunks(self, chunks: List[EmbeddingChunk]) -> int:
        if not chunks:
            return 0
        texts = [c.text for c in chunks]
        metadatas = [
            {
                "document_id": c.document_id,
                "chunk_id": c.chunk_id,
                "page_number": c.page_number,
                "section_title": c.section_title or "",
                "clause_id": c.clause_id or "",
            }
            for c in chunks
        ]
        ids = [c.chunk_id for c in chunks]
        self.db.add_texts(texts=texts, metadatas=metadatas, ids=ids)
        return len(ids)

    def delete_document(self, document_id: str):
        self.db.delete(where={"document_id": document_id})

    def search(self, query: str, document_ids: List[str], k: int = DEFAULT_SEARCH_K) -> List[SearchResult]:
        results = self.db.similarity_search_with_score(query, k=k, filter=_document_filter(document_ids))
        hits = []
        for doc, distance in results:
            meta = doc.metadata or {}
            hits.append(SearchResult(
                chunk_id=meta.get("chunk_id", ""),
                text=doc.page_content,
                page_number=int(meta.get("page_number") or 1),
                section_title=meta.get("section_title") or None,
                score=1.0 - float(distance),
            ))
        return hits


def create_vector_store(embeddings: Embeddings) -> Optional[ChromaVectorStore]:
    """Build the Chroma store when configured; None means linear-scan search only"""
    if not FeatureFlags.CHROMA_AVAILABLE:
        return None
    try:
        return ChromaVectorStore(embeddings)
    except Exception as e:
        logger.error(f"❌ Chroma initialization failed, using linear scan search: {e}")
        return None


def sync_chunks_to_store(vector_store: Optional[ChromaVectorStore], document_id: str,
                         chunks: List[EmbeddingChunk]):
    """Replace a document's chunks in Chroma. Failures are logged, never raised."""
    if vector_store is None:
        return
    try:
        vector_store.delete_document(document_id)
        added = vector_store.add_chunks(chunks)
        logger.info(f"Indexed {added} chunks in Chroma for document {document_id}")
    except Exception as e:
        logger.error(f"Chroma sync failed for document {document_id}: {e}")


def remove_from_store(vector_store: Optional[ChromaVectorStore], document_id: str):
    if vector_store is None:
        return
    try:
        vector_store.delete_document(document_id)
    except Exception as e:
        logger.error(f"Chroma delete failed for document {document_id}: {e}")


def rank_chunks(query_vector: List[float], chunks: List[EmbeddingChunk],
                top_k: int = DEFAULT_SEARCH_K) -> List[SearchResult]:
    """Linear cosine scan used when Chroma is unavailable or returns nothing"""
    if not query_vector:
        return [
            SearchResult(chunk_id=c.chunk_id, text=c.text, page_number=c.page_number,
                         section_title=c.section_title, score=0.5)
            for c in chunks[:top_k]
        ]

    scored = [
        SearchResult(
            chunk_id=c.chunk_id,
            text=c.text,
            page_number=c.page_number,
            section_title=c.section_title,
            score=cosine_similarity(query_vector, c.embedding_vector),
        )
        for c in chunks
    ]
    scored.sort(key=lambda r: r.score, reverse=True)
    return [r for r in scored[:top_k] if r.score > MIN_RELEVANCE_SCORE]


async def vector_search(document_ids: List[str], query: str, storage, embeddings: Embeddings,
                        vector_store: Optional[ChromaVectorStore] = None,
                        top_k: int = DEFAULT_SEARCH_K) -> List[SearchResult]:
    if not document_ids:
        return []

    if vector_store is not None:
        try:
            hits = await asyncio.to_thread(vector_store.search, query, document_ids, top_k)
            if hits:
                return hits
        except Exception as e:
            logger.error(f"Chroma search failed, falling back to linear scan: {e}")

    query_vector = await asyncio.to_thread(embeddings.embed_query, query)
    chunks = await storage.get_embeddings(document_ids)
    return rank_chunks(query_vector, chunks, top_k)

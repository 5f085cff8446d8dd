"""Embedding backends for chunk retrieval"""
import re
import logging
from typing import List, Optional

import numpy as np
from langchain_core.embeddings import Embeddings

from ..config import EMBEDDING_BACKEND, EMBEDDING_MODEL, LOCAL_EMBEDDING_DIM

logger = logging.getLogger(__name__)


def local_embed(text: str, dim: int = LOCAL_EMBEDDING_DIM) -> List[float]:
    """
    Deterministic bag-of-tokens vector.

    Each token longer than one character is hashed into one of ``dim``
    buckets; the counts are L2-normalized. Empty input gives a zero vector.
    """
    vec = [0.0] * dim
    tokens = [t for t in re.sub(r"\W+", " ", (text or "").lower()).split() if len(t) > 1]
    for token in tokens:
        h = 0
        for ch in token:
            h = (h * 31 + ord(ch)) & 0xFFFFFFFF
        vec[h % dim] += 1.0

    norm = float(np.sqrt(sum(v * v for v in vec)))
    if norm == 0:
        return vec
    return [v / norm for v in vec]


def cosine_similarity(a: List[float], b: List[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0:
        return 0.0
    return float(np.dot(va, vb) / denom)


class LocalHashEmbeddings(Embeddings):
    """LangChain adapter around ``local_embed`` so Chroma can use it"""

    def __init__(self, dim: int = LOCAL_EMBEDDING_DIM):
        self.dim = dim

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [local_embed(t, self.dim) for t in texts]

    def embed_query(self, text: str) -> List[float]:
        return local_embed(text, self.dim)


def get_embedding_function(backend: Optional[str] = None) -> Embeddings:
    """Sentence-transformer embeddings when configured and installed, else the local hash"""
    backend = (backend or EMBEDDING_BACKEND).lower()
    if backend == "huggingface":
        try:
            from langchain_huggingface import HuggingFaceEmbeddings
            embeddings = HuggingFaceEmbeddings(model_name=EMBEDDING_MODEL)
            logger.info(f"✅ Loaded embeddings with: {EMBEDDING_MODEL}")
            return embeddings
        except Exception as e:
            logger.warning(f"⚠️ Failed to load {EMBEDDING_MODEL}, using local hash embeddings: {e}")
    return LocalHashEmbeddings()

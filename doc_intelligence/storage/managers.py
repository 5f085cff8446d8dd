"""
Storage managers.

``InMemoryStorage`` is the default backend. ``initialize_storage`` switches
to MongoDB when MONGODB_URL is set and the server answers a ping, and falls
back to memory otherwise. Both backends expose the same async interface and
hand out copies, so callers never mutate stored records in place.
"""
import logging
from typing import Dict, List, Optional

from ..config import MONGODB_URL
from ..models import (
    ChatHistoryEntry, DocumentRecord, DocumentStructure, EmbeddingChunk, RiskFlag, UserRecord
)

logger = logging.getLogger(__name__)


def _copy(record):
    return record.model_copy(deep=True) if record is not None else None


class InMemoryStorage:
    """Dict-backed storage for development and tests"""

    backend_name = "memory"

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.documents: Dict[str, DocumentRecord] = {}
        self.structures: Dict[str, DocumentStructure] = {}
        self.embeddings: Dict[str, List[EmbeddingChunk]] = {}
        self.risk_flags: Dict[str, List[RiskFlag]] = {}
        self.chat_history: List[ChatHistoryEntry] = []

    # === USERS ===

    async def create_user(self, user: UserRecord) -> UserRecord:
        self.users[user.id] = _copy(user)
        return _copy(user)

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        return _copy(self.users.get(user_id))

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = (email or "").lower()
        for user in self.users.values():
            if user.email.lower() == email:
                return _copy(user)
        return None

    # === DOCUMENTS ===

    async def create_document(self, document: DocumentRecord) -> DocumentRecord:
        self.documents[document.id] = _copy(document)
        return _copy(document)

    async def get_document(self, document_id: str) -> Optional[DocumentRecord]:
        return _copy(self.documents.get(document_id))

    async def get_user_document(self, document_id: str, user_id: str) -> Optional[DocumentRecord]:
        doc = self.documents.get(document_id)
        if doc is None or doc.user_id != user_id:
            return None
        return _copy(doc)

    async def list_user_documents(self, user_id: str) -> List[DocumentRecord]:
        docs = [d for d in self.documents.values() if d.user_id == user_id]
        docs.sort(key=lambda d: d.upload_date, reverse=True)
        return [_copy(d) for d in docs]

    async def update_document(self, document_id: str, **fields) -> Optional[DocumentRecord]:
        doc = self.documents.get(document_id)
        if doc is None:
            return None
        updated = doc.model_validate({**doc.model_dump(), **fields})
        self.documents[document_id] = updated
        return _copy(updated)

    async def delete_user_document(self, document_id: str, user_id: str) -> bool:
        doc = self.documents.get(document_id)
        if doc is None or doc.user_id != user_id:
            return False
        del self.documents[document_id]
        return True

    # === STRUCTURES ===

    async def get_structure(self, document_id: str) -> Optional[DocumentStructure]:
        return _copy(self.structures.get(document_id))

    async def save_structure(self, structure: DocumentStructure) -> DocumentStructure:
        existing = self.structures.get(structure.document_id)
        if existing is not None:
            structure = structure.model_copy(update={"id": existing.id})
        self.structures[structure.document_id] = _copy(structure)
        return _copy(structure)

    async def delete_structure(self, document_id: str):
        self.structures.pop(document_id, None)

    # === EMBEDDINGS ===

    async def replace_embeddings(self, document_id: str, chunks: List[EmbeddingChunk]):
        self.embeddings[document_id] = [_copy(c) for c in chunks]

    async def get_embeddings(self, document_ids: List[str]) -> List[EmbeddingChunk]:
        return [_copy(c) for doc_id in document_ids for c in self.embeddings.get(doc_id, [])]

    async def delete_embeddings(self, document_id: str):
        self.embeddings.pop(document_id, None)

    # === RISK FLAGS ===

    async def replace_risk_flags(self, document_id: str, flags: List[RiskFlag]):
        self.risk_flags[document_id] = [_copy(f) for f in flags]

    async def get_risk_flags(self, document_ids: List[str]) -> List[RiskFlag]:
        return [_copy(f) for doc_id in document_ids for f in self.risk_flags.get(doc_id, [])]

    async def delete_risk_flags(self, document_id: str):
        self.risk_flags.pop(document_id, None)

    # === CHAT HISTORY ===

    async def add_chat_entry(self, entry: ChatHistoryEntry) -> ChatHistoryEntry:
        self.chat_history.append(_copy(entry))
        return _copy(entry)

    async def get_chat_history(self, document_id: str, user_id: str) -> List[ChatHistoryEntry]:
        entries = [
            e for e in self.chat_history
            if e.user_id == user_id and document_id in e.document_ids
        ]
        entries.sort(key=lambda e: e.timestamp)
        return [_copy(e) for e in entries]

    async def delete_chat_history(self, document_id: str):
        self.chat_history = [e for e in self.chat_history if document_id not in e.document_ids]

    # === MAINTENANCE ===

    async def get_stats(self) -> Dict[str, int]:
        return {
            "users": len(self.users),
            "documents": len(self.documents),
            "structures": len(self.structures),
            "embeddings": sum(len(v) for v in self.embeddings.values()),
            "risk_flags": sum(len(v) for v in self.risk_flags.values()),
            "chat_entries": len(self.chat_history),
        }

    async def close(self):
        pass


async def initialize_storage(mongodb_url: str = MONGODB_URL):
    """Connect MongoDB when configured, else (or on failure) use memory"""
    if mongodb_url:
        try:
            from .mongo_storage import MongoStorage
            storage = MongoStorage(mongodb_url)
            await storage.connect()
            logger.info("✅ Using MongoDB storage")
            return storage
        except Exception as e:
            logger.warning(f"⚠️ MongoDB not available: {e}")
            logger.info("🔄 Continuing with in-memory storage only")

    logger.info("Using in-memory storage")
    return InMemoryStorage()

#mongo_storage.py
import logging
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from ..config import MONGODB_DATABASE, MONGODB_TIMEOUT_MS
from ..core.exceptions import StorageError
from ..models import (
    ChatHistoryEntry, DocumentRecord, DocumentStructure, EmbeddingChunk, RiskFlag, UserRecord
)

logger = logging.getLogger(__name__)


def _to_doc(record) -> Dict:
    data = record.model_dump()
    return {"_id": data["id"], **data}


def _from_doc(model, doc: Optional[Dict]):
    if doc is None:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return model.model_validate(doc)


class MongoStorage:
    """
    MongoDB storage through motor. Records are stored as their
    ``model_dump()`` with ``_id`` set to the record id.
    """

    backend_name = "mongodb"

    def __init__(self, mongodb_url: str, database_name: str = MONGODB_DATABASE):
        self.mongodb_url = mongodb_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.db = None

    async def connect(self):
        self.client = AsyncIOMotorClient(
            self.mongodb_url,
            serverSelectionTimeoutMS=MONGODB_TIMEOUT_MS,
        )
        try:
            await self.client.admin.command("ping")
        except Exception as e:
            self.client.close()
            raise StorageError(f"MongoDB ping failed: {e}") from e

        self.db = self.client[self.database_name]
        await self.db.users.create_index("email", unique=True)
        await self.db.documents.create_index([("user_id", 1), ("upload_date", -1)])
        await self.db.structures.create_index("document_id", unique=True)
        await self.db.embeddings.create_index("document_id")
        await self.db.risk_flags.create_index("document_id")
        await self.db.chat_history.create_index([("document_ids", 1), ("timestamp", 1)])
        logger.info(f"✅ MongoDB connected successfully to {self.database_name}")

    # === USERS ===

    async def create_user(self, user: UserRecord) -> UserRecord:
        await self.db.users.insert_one(_to_doc(user))
        return user

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        return _from_doc(UserRecord, await self.db.users.find_one({"_id": user_id}))

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        doc = await self.db.users.find_one({"email": (email or "").lower()})
        return _from_doc(UserRecord, doc)

    # === DOCUMENTS ===

    async def create_document(self, document: DocumentRecord) -> DocumentRecord:
        await self.db.documents.insert_one(_to_doc(document))
        return document

    async def get_document(self, document_id: str) -> Optional[DocumentRecord]:
        return _from_doc(DocumentRecord, await self.db.documents.find_one({"_id": document_id}))

    async def get_user_document(self, document_id: str, user_id: str) -> Optional[DocumentRecord]:
        doc = await self.db.documents.find_one({"_id": document_id, "user_id": user_id})
        return _from_doc(DocumentRecord, doc)

    async def list_user_documents(self, user_id: str) -> List[DocumentRecord]:
        cursor = self.db.documents.find({"user_id": user_id}).sort("upload_date", -1)
        return [_from_doc(DocumentRecord, doc) async for doc in cursor]

    async def update_document(self, document_id: str, **fields) -> Optional[DocumentRecord]:
        current = await self.get_document(document_id)
        if current is None:
            return None
        updated = DocumentRecord.model_validate({**current.model_dump(), **fields})
        await self.db.documents.replace_one({"_id": document_id}, _to_doc(updated))
        return updated

    async def delete_user_document(self, document_id: str, user_id: str) -> bool:
        result = await self.db.documents.delete_one({"_id": document_id, "user_id": user_id})
        return result.deleted_count > 0

    # === STRUCTURES ===

    async def get_structure(self, document_id: str) -> Optional[DocumentStructure]:
        doc = await self.db.structures.find_one({"document_id": document_id})
        return _from_doc(DocumentStructure, doc)

    async def save_structure(self, structure: DocumentStructure) -> DocumentStructure:
        existing = await self.db.structures.find_one({"document_id": structure.document_id}, {"_id": 1})
        if existing is not None:
            structure = structure.model_copy(update={"id": existing["_id"]})
        await self.db.structures.replace_one(
            {"document_id": structure.document_id}, _to_doc(structure), upsert=True
        )
        return structure

    async def delete_structure(self, document_id: str):
        await self.db.structures.delete_many({"document_id": document_id})

    # === EMBEDDINGS ===

    async def replace_embeddings(self, document_id: str, chunks: List[EmbeddingChunk]):
        await self.db.embeddings.delete_many({"document_id": document_id})
        if chunks:
            await self.db.embeddings.insert_many([_to_doc(c) for c in chunks])

    async def get_embeddings(self, document_ids: List[str]) -> List[EmbeddingChunk]:
        cursor = self.db.embeddings.find({"document_id": {"$in": list(document_ids)}})
        return [_from_doc(EmbeddingChunk, doc) async for doc in cursor]

    async def delete_embeddings(self, document_id: str):
        await self.db.embeddings.delete_many({"document_id": document_id})

    # === RISK FLAGS ===

    async def replace_risk_flags(self, document_id: str, flags: List[RiskFlag]):
        await self.db.risk_flags.delete_many({"document_id": document_id})
        if flags:
            await self.db.risk_flags.insert_many([_to_doc(f) for f in flags])

    async def get_risk_flags(self, document_ids: List[str]) -> List[RiskFlag]:
        cursor = self.db.risk_flags.find({"document_id": {"$in": list(document_ids)}})
        return [_from_doc(RiskFlag, doc) async for doc in cursor]

    async def delete_risk_flags(self, document_id: str):
        await self.db.risk_flags.delete_many({"document_id": document_id})

    # === CHAT HISTORY ===

    async def add_chat_entry(self, entry: ChatHistoryEntry) -> ChatHistoryEntry:
        await self.db.chat_history.insert_one(_to_doc(entry))
        return entry

    async def get_chat_history(self, document_id: str, user_id: str) -> List[ChatHistoryEntry]:
        cursor = self.db.chat_history.find(
            {"user_id": user_id, "document_ids": document_id}
        ).sort("timestamp", 1)
        return [_from_doc(ChatHistoryEntry, doc) async for doc in cursor]

    async def delete_chat_history(self, document_id: str):
        await self.db.chat_history.delete_many({"document_ids": document_id})

    # === MAINTENANCE ===

    async def get_stats(self) -> Dict[str, int]:
        return {
            "users": await self.db.users.count_documents({}),
            "documents": await self.db.documents.count_documents({}),
            "structures": await self.db.structures.count_documents({}),
            "embeddings": await self.db.embeddings.count_documents({}),
            "risk_flags": await self.db.risk_flags.count_documents({}),
            "chat_entries": await self.db.chat_history.count_documents({}),
        }

    async def close(self):
        if self.client is not None:
            self.client.close()
            logger.info("MongoDB connection closed")

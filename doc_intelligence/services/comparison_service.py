"""
Cross-document operations: version comparison, multi-document analysis
and schema mapping of extracted fields.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..core.exceptions import DocumentNotFoundError, ValidationError
from ..models import (
    DocumentRecord, DocumentStructure, ExtractedField, MultiDocAnalysis,
    SchemaMapping, UserRecord
)
from ..models.api_models import CompareResponse, DocumentRef

logger = logging.getLogger(__name__)


def structure_text(structure: Optional[DocumentStructure]) -> str:
    if not structure:
        return ""
    return "\n".join(page.raw_text for page in structure.pages)


def _document_ref(doc: DocumentRecord) -> DocumentRef:
    return DocumentRef(id=doc.id, name=doc.document_name, version=doc.version)


class ComparisonService:
    """Operations that read one or more of a user's processed documents"""

    def __init__(self, storage, ai_service):
        self.storage = storage
        self.ai_service = ai_service

    async def _owned(self, document_id: str, user: UserRecord) -> DocumentRecord:
        doc = await self.storage.get_user_document(document_id, user.id)
        if doc is None:
            raise DocumentNotFoundError()
        return doc

    async def compare_documents(self, user: UserRecord, base_document_id: str,
                                comparison_document_id: str) -> CompareResponse:
        base = await self._owned(base_document_id, user)
        comparison = await self._owned(comparison_document_id, user)

        base_structure = await self.storage.get_structure(base.id)
        comparison_structure = await self.storage.get_structure(comparison.id)

        differences = await asyncio.to_thread(
            self.ai_service.compare_versions,
            structure_text(base_structure),
            structure_text(comparison_structure),
            base_structure.clauses if base_structure else None,
            comparison_structure.clauses if comparison_structure else None,
        )
        logger.info(f"🔄 Compared {base.id} with {comparison.id}: {len(differences)} differences")

        return CompareResponse(
            differences=differences,
            base_document=_document_ref(base),
            comparison_document=_document_ref(comparison),
        )

    async def analyze_documents(self, user: UserRecord, document_ids: List[str]) -> MultiDocAnalysis:
        if not document_ids or len(document_ids) < 2:
            raise ValidationError("At least 2 document IDs required")

        docs = []
        for doc_id in dict.fromkeys(document_ids):
            doc = await self.storage.get_user_document(doc_id, user.id)
            if doc:
                docs.append(doc)
        if len(docs) < 2:
            raise DocumentNotFoundError("Documents not found")

        payload: List[Dict[str, Any]] = []
        for doc in docs:
            structure = await self.storage.get_structure(doc.id)
            fields = {f.field_name: f.value for f in structure.extracted_fields} if structure else {}
            payload.append({
                'id': doc.id,
                'name': doc.document_name,
                'text': structure_text(structure),
                'extracted_fields': fields,
            })

        logger.info(f"📄 Multi-document analysis over {len(payload)} documents")
        return await asyncio.to_thread(self.ai_service.analyze_multi_document, payload)

    async def map_document_schema(self, user: UserRecord, document_id: str,
                                  target_schema: Optional[str]) -> SchemaMapping:
        doc = await self._owned(document_id, user)
        if not target_schema:
            raise ValidationError("Schema type required")

        structure = await self.storage.get_structure(doc.id)
        if structure is None:
            raise DocumentNotFoundError("Structure not found")

        fields = [
            ExtractedField(field_name=f.field_name, value=f.effective_value, page_number=f.page_number)
            for f in structure.extracted_fields
        ]
        return await asyncio.to_thread(self.ai_service.map_to_schema, fields, target_schema)

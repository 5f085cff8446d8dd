"""Human review of extracted data and JSON/CSV export"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.exceptions import DocumentNotFoundError
from ..models import DocumentStructure, ExtractedClause, ExtractedField, UserRecord
from ..utils.formatting import csv_escape

logger = logging.getLogger(__name__)

CSV_HEADER = "fieldName,value,pageNumber,confidenceScore,reviewed"


def find_field_index(fields: List[ExtractedField], field_name: str) -> int:
    """Exact or case-insensitive name match first, then substring match; -1 if none"""
    wanted = (field_name or "").lower()
    for i, f in enumerate(fields):
        if f.field_name == field_name or f.field_name.lower() == wanted:
            return i
    for i, f in enumerate(fields):
        if wanted in f.field_name.lower():
            return i
    return -1


def _csv_value(value: Any) -> str:
    """JSON spelling for non-text values: true/false, null, and whole floats without .0"""
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return json.dumps(value)


def fields_to_csv(fields: List[ExtractedField]) -> str:
    rows = []
    for f in fields:
        value = f.effective_value
        rows.append(",".join([
            csv_escape(f.field_name or ""),
            csv_escape("" if value is None else _csv_value(value)),
            str(f.page_number),
            _csv_value(f.confidence_score),
            "true" if f.reviewed else "false",
        ]))
    return CSV_HEADER + "\n" + "\n".join(rows)


class ReviewService:
    """Applies reviewer overrides and builds export payloads"""

    def __init__(self, storage):
        self.storage = storage

    async def _structure(self, user: UserRecord, document_id: str) -> DocumentStructure:
        doc = await self.storage.get_user_document(document_id, user.id)
        if doc is None:
            raise DocumentNotFoundError()
        structure = await self.storage.get_structure(doc.id)
        if structure is None:
            raise DocumentNotFoundError("Structure not found")
        return structure

    async def review_field(self, user: UserRecord, document_id: str, field_name: str,
                           override_value: Any = None, approved: Optional[bool] = None) -> List[ExtractedField]:
        structure = await self._structure(user, document_id)

        index = find_field_index(structure.extracted_fields, field_name)
        if index == -1:
            raise DocumentNotFoundError(
                "Field not found",
                details={
                    'field_name': field_name,
                    'available_fields': [f.field_name for f in structure.extracted_fields],
                },
            )

        field = structure.extracted_fields[index]
        field.override_value = override_value
        field.reviewed = approved is not False
        await self.storage.save_structure(structure)
        logger.info(f"✅ Field '{field.field_name}' reviewed on document {document_id}")
        return structure.extracted_fields

    async def review_clause(self, user: UserRecord, document_id: str, clause_id: str,
                            override_content: Optional[str] = None,
                            approved: Optional[bool] = None) -> List[ExtractedClause]:
        structure = await self._structure(user, document_id)

        clause = next((c for c in structure.clauses if c.id == clause_id), None)
        if clause is None:
            raise DocumentNotFoundError("Clause not found")

        clause.override_content = override_content
        clause.reviewed = approved is not False
        await self.storage.save_structure(structure)
        logger.info(f"✅ Clause {clause_id} reviewed on document {document_id}")
        return structure.clauses

    async def export_json(self, user: UserRecord, document_id: str) -> Tuple[str, Dict[str, Any]]:
        """Export filename and payload with the document summary and its structure"""
        doc = await self.storage.get_user_document(document_id, user.id)
        if doc is None:
            raise DocumentNotFoundError()
        structure = await self.storage.get_structure(doc.id)

        payload = {
            'document': {
                'document_name': doc.document_name,
                'version': doc.version,
                'document_type': doc.document_type,
                'risk_score': doc.risk_score,
                'summary': doc.summary,
            },
            'structure': structure.model_dump(
                mode="json",
                include={
                    'sections', 'clauses', 'signatures', 'relationships',
                    'cross_references', 'extracted_fields', 'tables',
                },
            ) if structure else None,
        }
        return f"{doc.document_name}_export.json", payload

    async def export_csv(self, user: UserRecord, document_id: str) -> Tuple[str, str]:
        doc = await self.storage.get_user_document(document_id, user.id)
        if doc is None:
            raise DocumentNotFoundError()
        structure = await self.storage.get_structure(doc.id)
        return f"{doc.document_name}_export.csv", fields_to_csv(structure.extracted_fields if structure else [])

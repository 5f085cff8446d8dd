"""
Document processing pipeline.

Runs once per upload (and on reprocess): text extraction, AI structure
extraction with heuristic fallback, document-type resolution, chunk
embedding, risk assessment and scoring. The document status moves
pending -> processing -> completed, or failed on any error.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import CHUNK_SIZE, SEMANTIC_RISK_INPUT_LIMIT
from ..core.exceptions import DocumentNotFoundError
from ..models import (
    DocumentStatus, DocumentStructure, DocumentType, EmbeddingChunk,
    ExtractedField, ExtractedStructure, PageText
)
from ..utils.formatting import build_processing_summary
from ..utils.text_processing import chunk_text, correct_ocr_text
from .heuristics import (
    detect_document_type, detect_tables_from_text, extract_fields_from_text,
    extract_id_fields_from_text, extract_sections_from_text, normalize_document_type
)
from .risk_engine import assess_risks, compute_risk_score, should_run_semantic_analysis
from .vector_store import sync_chunks_to_store

logger = logging.getLogger(__name__)

IMAGE_FIELD_CONFIDENCE_CAP = 0.7
IMAGE_FIELD_DEFAULT_CONFIDENCE = 0.6


@dataclass
class PipelineResult:
    """Outcome of one pipeline run"""
    document_id: str
    document_type: str
    risk_score: int
    summary: str
    chunk_count: int = 0
    risk_flag_count: int = 0


@dataclass
class _Extraction:
    raw_text: str
    structure: DocumentStructure
    ai_document_type: Optional[str] = None
    summary: str = ""
    warnings: List[str] = field(default_factory=list)


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _merge_fields(primary: List[ExtractedField], extra: List[ExtractedField]) -> List[ExtractedField]:
    """Append ``extra`` fields whose name (case-insensitive) is not already present"""
    merged = list(primary)
    seen = {f.field_name.lower() for f in merged}
    for f in extra:
        key = f.field_name.lower()
        if key not in seen:
            merged.append(f)
            seen.add(key)
    return merged


class DocumentPipeline:
    """Processes one stored document end to end"""

    def __init__(self, storage, ai_service, processor, embeddings, vector_store=None):
        self.storage = storage
        self.ai_service = ai_service
        self.processor = processor
        self.embeddings = embeddings
        self.vector_store = vector_store

    async def run(self, document_id: str, file_path: str) -> PipelineResult:
        doc = await self.storage.get_document(document_id)
        if doc is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        await self.storage.update_document(document_id, status=DocumentStatus.PROCESSING.value)
        logger.info(f"📄 Processing document {document_id} ({doc.mime_type})")

        try:
            content = await asyncio.to_thread(_read_file, file_path)
            if doc.is_image:
                extraction = await self._process_image(document_id, content, doc.mime_type)
            else:
                extraction = await self._process_pdf(document_id, content)

            raw_text = extraction.raw_text
            structure = extraction.structure

            heuristic_type = detect_document_type(raw_text)
            final_type = normalize_document_type(extraction.ai_document_type) or heuristic_type
            if heuristic_type == DocumentType.IDENTITY_DOCUMENT.value:
                structure.extracted_fields = _merge_fields(
                    structure.extracted_fields, extract_id_fields_from_text(raw_text)
                )
            structure.document_type = final_type

            await self.storage.save_structure(structure)

            chunk_count = await self._store_embeddings(document_id, structure, raw_text)

            semantic_risk = None
            if should_run_semantic_analysis(raw_text, final_type):
                semantic_risk = await asyncio.to_thread(
                    self.ai_service.detect_risks_semantic, raw_text[:SEMANTIC_RISK_INPUT_LIMIT]
                )

            flags = assess_risks(raw_text, final_type, semantic_risk, document_id=document_id)
            await self.storage.replace_risk_flags(document_id, flags)
            risk_score = compute_risk_score(flags, final_type)

            summary = extraction.summary.strip() or build_processing_summary(
                final_type,
                len(structure.sections),
                len(structure.clauses),
                len(structure.extracted_fields),
                len(structure.tables),
            )

            await self.storage.update_document(
                document_id,
                status=DocumentStatus.COMPLETED.value,
                risk_score=risk_score,
                summary=summary,
                document_type=final_type,
            )
            logger.info(
                f"✅ Document {document_id} processed: type={final_type}, risk_score={risk_score}, "
                f"{len(flags)} risk flags, {chunk_count} chunks"
            )
            return PipelineResult(
                document_id=document_id,
                document_type=final_type,
                risk_score=risk_score,
                summary=summary,
                chunk_count=chunk_count,
                risk_flag_count=len(flags),
            )
        except Exception as e:
            logger.error(f"❌ Pipeline failed for document {document_id}: {e}", exc_info=True)
            await self.storage.update_document(document_id, status=DocumentStatus.FAILED.value)
            raise

    # --- Extraction branches ---

    async def _process_image(self, document_id: str, content: bytes, mime_type: str) -> _Extraction:
        ocr_text = await asyncio.to_thread(self.processor.extract_image_text, content)
        try:
            ai = await asyncio.to_thread(self.ai_service.extract_structure_from_image, content, mime_type)
        except Exception as e:
            logger.warning(f"Image extraction failed for {document_id}, using OCR only: {e}")
            ai = ExtractedStructure(page_count=1)

        raw_text = correct_ocr_text(ai.raw_text.strip() or ocr_text)

        if ai.extracted_fields:
            fields = [
                f.model_copy(update={
                    "page_number": f.page_number or 1,
                    "confidence_score": (min(f.confidence_score, IMAGE_FIELD_CONFIDENCE_CAP)
                                         if f.confidence_score else IMAGE_FIELD_DEFAULT_CONFIDENCE),
                    "reviewed": False,
                })
                for f in ai.extracted_fields
            ]
        else:
            fields = extract_fields_from_text(raw_text)

        structure = DocumentStructure(
            document_id=document_id,
            pages=[PageText(page_number=1, raw_text=raw_text, sections=ai.sections)],
            sections=ai.sections,
            tables=ai.tables or detect_tables_from_text(raw_text, 1),
            extracted_fields=fields,
            clauses=ai.clauses,
            signatures=ai.signatures,
            relationships=ai.relationships,
            cross_references=ai.cross_references,
        )

        summary = "\n\n".join(part for part in (ai.summary, ai.insights) if part)
        if not summary:
            summary = (f"Image processed with OCR. {len(structure.sections)} sections, {len(fields)} fields."
                       if ocr_text else "Image processed.")

        return _Extraction(raw_text=raw_text, structure=structure,
                           ai_document_type=ai.document_type, summary=summary)

    async def _process_pdf(self, document_id: str, content: bytes) -> _Extraction:
        result = await asyncio.to_thread(self.processor.extract_pdf_pages, content)
        page_texts = result.pages or [""]
        raw_text = "\n".join(page_texts)
        pages = [PageText(page_number=i + 1, raw_text=text) for i, text in enumerate(page_texts)]

        ai = await asyncio.to_thread(self.ai_service.extract_structure_from_text, raw_text, len(pages))

        heuristic_tables = [
            table
            for page in pages
            for table in detect_tables_from_text(page.raw_text, page.page_number)
        ]

        heuristic_fields = extract_fields_from_text(raw_text)
        fields = _merge_fields(ai.extracted_fields, heuristic_fields) if ai.extracted_fields else heuristic_fields

        structure = DocumentStructure(
            document_id=document_id,
            pages=pages,
            sections=ai.sections or extract_sections_from_text(raw_text),
            tables=ai.tables or heuristic_tables,
            extracted_fields=fields,
            clauses=ai.clauses,
            signatures=ai.signatures,
            relationships=ai.relationships,
            cross_references=ai.cross_references,
        )
        return _Extraction(raw_text=raw_text, structure=structure, ai_document_type=ai.document_type,
                           summary=ai.summary or "", warnings=result.warnings)

    # --- Chunking and embeddings ---

    @staticmethod
    def build_chunks(structure: DocumentStructure, raw_text: str) -> List[Dict]:
        """Chunks from page text, section content and clause content"""
        chunks = []
        for page in structure.pages:
            chunks.extend(chunk_text(page.raw_text, page.page_number))
        for section in structure.sections:
            for c in chunk_text(section.content, section.page_number):
                chunks.append({**c, 'section_title': section.title})
        for clause in structure.clauses:
            for c in chunk_text(clause.content, clause.page_number):
                chunks.append({**c, 'section_title': clause.title, 'clause_id': clause.id})

        if not chunks and raw_text.strip():
            chunks.append({'text': raw_text[:CHUNK_SIZE].strip(), 'page_number': 1})
        return [c for c in chunks if c['text'].strip()]

    async def _store_embeddings(self, document_id: str, structure: DocumentStructure, raw_text: str) -> int:
        chunks = self.build_chunks(structure, raw_text)
        texts = [c['text'] for c in chunks]
        vectors = await asyncio.to_thread(self.embeddings.embed_documents, texts) if texts else []

        records = []
        for i, (chunk, vector) in enumerate(zip(chunks, vectors)):
            if not vector:
                continue
            records.append(EmbeddingChunk(
                document_id=document_id,
                chunk_id=f"chunk_{document_id}_{i}",
                section_title=chunk.get('section_title'),
                clause_id=chunk.get('clause_id'),
                page_number=chunk['page_number'],
                text=chunk['text'],
                embedding_vector=list(vector),
            ))

        await self.storage.replace_embeddings(document_id, records)
        await asyncio.to_thread(sync_chunks_to_store, self.vector_store, document_id, records)
        return len(records)


async def run_document_pipeline(pipeline: DocumentPipeline, document_id: str, file_path: str) -> PipelineResult:
    return await pipeline.run(document_id, file_path)

"""
Background processing of uploaded documents.

The HTTP request returns as soon as the file is stored; the pipeline then
runs here and records progress on the document itself (status, risk score,
summary), so clients poll ``GET /api/documents/{id}``.
"""
import time
import logging

from ..services.pipeline import DocumentPipeline, run_document_pipeline

logger = logging.getLogger(__name__)


async def process_document_background(pipeline: DocumentPipeline, document_id: str, file_path: str):
    """Run the pipeline for one document; failures are logged, never raised"""
    start_time = time.time()
    try:
        result = await run_document_pipeline(pipeline, document_id, file_path)
        processing_time = time.time() - start_time
        logger.info(
            f"Document {document_id} processed successfully in {processing_time:.2f}s "
            f"({result.chunk_count} chunks, {result.risk_flag_count} risk flags)"
        )
    except Exception as e:
        processing_time = time.time() - start_time
        logger.error(f"Error processing document {document_id} after {processing_time:.2f}s: {e}", exc_info=True)

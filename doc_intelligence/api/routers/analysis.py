# doc_intelligence/api/routers/analysis.py
"""Comparison, multi-document analysis and schema mapping endpoints"""
import logging
from fastapi import APIRouter, Depends

from ...core.dependencies import get_comparison_service
from ...core.security import get_current_user
from ...models import (
    AnalyzeRequest, CompareRequest, CompareResponse, MultiDocAnalysis, SchemaMapping,
    SchemaRequest, UserRecord
)
from ...services.comparison_service import ComparisonService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents")

@router.post("/compare", response_model=CompareResponse)
async def compare_documents(
    request: CompareRequest,
    current_user: UserRecord = Depends(get_current_user),
    service: ComparisonService = Depends(get_comparison_service),
):
    return await service.compare_documents(current_user, request.base_document_id, request.comparison_document_id)

@router.post("/analyze", response_model=MultiDocAnalysis)
async def analyze_documents(
    request: AnalyzeRequest,
    current_user: UserRecord = Depends(get_current_user),
    service: ComparisonService = Depends(get_comparison_service),
):
    return await service.analyze_documents(current_user, request.document_ids)

@router.post("/{document_id}/schema", response_model=SchemaMapping)
async def map_schema(
    document_id: str,
    request: SchemaRequest,
    current_user: UserRecord = Depends(get_current_user),
    service: ComparisonService = Depends(get_comparison_service),
):
    target = request.target_schema.value if request.target_schema else None
    return await service.map_document_schema(current_user, document_id, target)

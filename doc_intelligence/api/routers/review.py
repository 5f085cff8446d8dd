# doc_intelligence/api/routers/review.py
"""Human-in-the-loop review of extracted fields and clauses"""
from typing import List
from fastapi import APIRouter, Depends

from ...core.dependencies import get_review_service
from ...core.security import get_current_user
from ...models import ClauseReviewRequest, ExtractedClause, ExtractedField, FieldReviewRequest, UserRecord
from ...services.export_service import ReviewService

router = APIRouter(prefix="/api/documents")

@router.patch("/{document_id}/review/field", response_model=List[ExtractedField])
async def review_field(
    document_id: str,
    request: FieldReviewRequest,
    current_user: UserRecord = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return await service.review_field(
        current_user, document_id, request.field_name, request.override_value, request.approved
    )

@router.patch("/{document_id}/review/clause", response_model=List[ExtractedClause])
async def review_clause(
    document_id: str,
    request: ClauseReviewRequest,
    current_user: UserRecord = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return await service.review_clause(
        current_user, document_id, request.clause_id, request.override_content, request.approved
    )

# doc_intelligence/api/routers/risk.py
"""Risk analysis endpoints"""
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException

from ...core.dependencies import get_storage
from ...core.security import get_current_user
from ...models import (
    SEVERITY_RANK, RiskAnalysisResponse, RiskFactor, RiskFlag, RiskFlagResponse, UserRecord
)

logger = logging.getLogger(__name__)

router = APIRouter()

def sort_flags(flags: List[RiskFlag]) -> List[RiskFlag]:
    """Highest severity first, newest first within a severity"""
    return sorted(flags, key=lambda f: (SEVERITY_RANK.get(f.severity, 0), f.created_at), reverse=True)

@router.get("/api/documents/{document_id}/risk", response_model=RiskAnalysisResponse)
async def get_risk_analysis(document_id: str, current_user: UserRecord = Depends(get_current_user),
                            storage=Depends(get_storage)):
    doc = await storage.get_user_document(document_id, current_user.id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Document not found")

    flags = await storage.get_risk_flags([doc.id])
    risk_factors = [
        RiskFactor(
            category=f.risk_type,
            severity=f.severity,
            description=f.explanation,
            location={"page": f.page_number} if f.page_number else None,
            suggested_clause=f.suggested_clause,
            regulatory_mapping=f.regulatory_mapping,
        )
        for f in flags
    ]
    return RiskAnalysisResponse(document_id=doc.id, risk_score=doc.risk_score, risk_factors=risk_factors)

@router.get("/api/risk/flags", response_model=List[RiskFlagResponse])
async def get_all_risk_flags(current_user: UserRecord = Depends(get_current_user), storage=Depends(get_storage)):
    docs = {d.id: d for d in await storage.list_user_documents(current_user.id)}
    if not docs:
        return []

    flags = sort_flags(await storage.get_risk_flags(list(docs)))
    return [
        RiskFlagResponse(
            id=f.id,
            document_id=f.document_id,
            document_name=docs[f.document_id].document_name if f.document_id in docs else None,
            risk_score=docs[f.document_id].risk_score if f.document_id in docs else None,
            clause_reference=f.clause_reference,
            risk_type=f.risk_type,
            severity=f.severity,
            explanation=f.explanation,
            suggested_clause=f.suggested_clause,
            page_number=f.page_number,
        )
        for f in flags
    ]

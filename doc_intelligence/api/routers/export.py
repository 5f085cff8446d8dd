# doc_intelligence/api/routers/export.py
"""JSON and CSV export endpoints"""
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from ...core.dependencies import get_review_service
from ...core.security import get_current_user
from ...models import UserRecord
from ...services.export_service import ReviewService

router = APIRouter(prefix="/api/documents")

def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}

@router.get("/{document_id}/export/json")
async def export_json(
    document_id: str,
    current_user: UserRecord = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    filename, payload = await service.export_json(current_user, document_id)
    return JSONResponse(content=payload, headers=_attachment(filename))

@router.get("/{document_id}/export/csv")
async def export_csv(
    document_id: str,
    current_user: UserRecord = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    filename, csv_text = await service.export_csv(current_user, document_id)
    return Response(content=csv_text, media_type="text/csv", headers=_attachment(filename))

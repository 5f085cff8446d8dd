# doc_intelligence/api/routers/chat.py
"""Chat endpoints for grounded questions over one or more documents"""
import logging
from typing import List
from fastapi import APIRouter, Depends

from ...core.dependencies import get_chat_service
from ...core.security import get_current_user
from ...models import ChatHistoryItem, ChatRequest, ChatResponse, UserRecord
from ...services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents")

@router.post("/{document_id}/chat", response_model=ChatResponse)
async def chat_with_document(
    document_id: str,
    request: ChatRequest,
    current_user: UserRecord = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Ask a question; ``document_ids`` in the body widens the scope beyond the path document"""
    document_ids = request.document_ids or [document_id]
    logger.info(f"💬 Chat request from {current_user.id} over {len(document_ids)} document(s)")
    return await chat_service.ask(current_user, document_ids, request.message, request.risk_mode)

@router.get("/{document_id}/chat", response_model=List[ChatHistoryItem])
async def get_chat_history(
    document_id: str,
    current_user: UserRecord = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    history = await chat_service.history(current_user, document_id)
    return [
        ChatHistoryItem(
            id=entry.id,
            question=entry.question,
            answer=entry.answer,
            citations=entry.citations,
            confidence=entry.confidence,
            timestamp=entry.timestamp,
        )
        for entry in history
    ]

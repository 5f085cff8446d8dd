# doc_intelligence/api/routers/documents.py
"""
Document management endpoints: upload with background processing,
listing, retrieval of the file and extracted structure, reprocessing
and cascading deletion.
"""
import os
import re
import time
import asyncio
import logging
from typing import List, Optional
from fastapi import (
    APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
)
from fastapi.responses import FileResponse
from fastapi.security import HTTPAuthorizationCredentials

from ...config import ALLOWED_MIME_TYPES, MAX_FILE_SIZE, UPLOAD_DIR
from ...core.dependencies import get_pipeline, get_storage, get_vector_store
from ...core.security import get_current_user, resolve_user, security
from ...models import (
    DocumentRecord, DocumentResponse, DocumentStatus, DocumentStructure, MessageResponse, UserRecord
)
from ...services.vector_store import remove_from_store
from ...tasks.document_tasks import process_document_background

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents")

FILE_CACHE_CONTROL = "public, max-age=3600, immutable"

def sanitize_filename(filename: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", filename or "upload")

def _save_upload(content: bytes, filename: str) -> str:
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    path = os.path.join(UPLOAD_DIR, f"{int(time.time() * 1000)}_{sanitize_filename(filename)}")
    with open(path, "wb") as f:
        f.write(content)
    return path

def _remove_file(path: str):
    if not path:
        return
    try:
        os.remove(path)
    except OSError as e:
        logger.warning(f"⚠️ Could not remove uploaded file {path}: {e}")

async def _owned_document(document_id: str, user: UserRecord, storage) -> DocumentRecord:
    doc = await storage.get_user_document(document_id, user.id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc

@router.get("", response_model=List[DocumentResponse])
async def list_documents(current_user: UserRecord = Depends(get_current_user), storage=Depends(get_storage)):
    docs = await storage.list_user_documents(current_user.id)
    return [DocumentResponse.from_record(d) for d in docs]

@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    document_name: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    document_type: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    version: Optional[str] = Form(None),
    current_user: UserRecord = Depends(get_current_user),
    storage=Depends(get_storage),
    pipeline=Depends(get_pipeline),
):
    """Store the file, create a pending document and process it in the background"""
    if file.content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=400, detail="File type not allowed.")

    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(status_code=413, detail=f"File too large. Maximum size: {MAX_FILE_SIZE // (1024 * 1024)}MB")

    file_path = await asyncio.to_thread(_save_upload, content, file.filename)
    logger.info(f"📄 Upload stored: {file.filename} ({len(content)} bytes) -> {file_path}")

    doc = await storage.create_document(DocumentRecord(
        user_id=current_user.id,
        document_name=document_name or title or file.filename,
        version=version or "1.0",
        document_type=document_type or "contract",
        category=category or "",
        file_path=file_path,
        original_name=file.filename,
        mime_type=file.content_type,
        status=DocumentStatus.PENDING,
    ))

    background_tasks.add_task(process_document_background, pipeline, doc.id, file_path)
    return DocumentResponse.from_record(doc)

@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, current_user: UserRecord = Depends(get_current_user),
                       storage=Depends(get_storage)):
    return DocumentResponse.from_record(await _owned_document(document_id, current_user, storage))

@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    current_user: UserRecord = Depends(get_current_user),
    storage=Depends(get_storage),
    vector_store=Depends(get_vector_store),
):
    doc = await _owned_document(document_id, current_user, storage)
    await storage.delete_user_document(doc.id, current_user.id)
    await storage.delete_structure(doc.id)
    await storage.delete_embeddings(doc.id)
    await asyncio.to_thread(remove_from_store, vector_store, doc.id)
    await storage.delete_risk_flags(doc.id)
    await storage.delete_chat_history(doc.id)
    await asyncio.to_thread(_remove_file, doc.file_path)
    logger.info(f"🗑️ Document {doc.id} deleted with all derived data")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/{document_id}/file")
async def get_document_file(
    document_id: str,
    token: Optional[str] = Query(None, description="Bearer token for clients that cannot set headers"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    storage=Depends(get_storage),
):
    """Serve the original upload; accepts the token as a header or query parameter"""
    user = await resolve_user(credentials.credentials if credentials else token, storage)
    doc = await _owned_document(document_id, user, storage)
    if not doc.file_path or not os.path.isfile(doc.file_path):
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(
        doc.file_path,
        media_type=doc.mime_type or None,
        headers={"Cache-Control": FILE_CACHE_CONTROL, "ETag": f'"{doc.id}"'},
    )

@router.get("/{document_id}/structure", response_model=Optional[DocumentStructure])
async def get_document_structure(document_id: str, current_user: UserRecord = Depends(get_current_user),
                                 storage=Depends(get_storage)):
    doc = await _owned_document(document_id, current_user, storage)
    return await storage.get_structure(doc.id)

@router.post("/{document_id}/reprocess", response_model=MessageResponse)
async def reprocess_document(
    document_id: str,
    background_tasks: BackgroundTasks,
    current_user: UserRecord = Depends(get_current_user),
    storage=Depends(get_storage),
    pipeline=Depends(get_pipeline),
):
    doc = await _owned_document(document_id, current_user, storage)
    if not doc.file_path:
        raise HTTPException(status_code=400, detail="No file to reprocess")
    background_tasks.add_task(process_document_background, pipeline, doc.id, doc.file_path)
    logger.info(f"🔄 Reprocessing queued for document {doc.id}")
    return MessageResponse(message="Reprocessing started. Refresh in a few seconds.")

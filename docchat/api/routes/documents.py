import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, HTTPException, Query

from docchat.api.auth import get_identity
from docchat.config.plans import PlanLimits
from docchat.core.errors import NotFound
from docchat.core.pipeline.chat import ChatPipeline
from docchat.models.document import DocumentFilter, DocumentRecord
from docchat.models.identity import Identity
from docchat.models.message import MessagePage
from docchat.storage.base import DocumentRepository

router = APIRouter()
logger = logging.getLogger(__name__)

# Dependencies for stores (from app.state)
def get_document_repository(request: Request) -> DocumentRepository:
    return request.app.state.documents

def get_chat_pipeline(request: Request) -> ChatPipeline:
    return request.app.state.chat_pipeline

def _owned_document(documents: DocumentRepository, identity: Identity, document_id: str) -> DocumentRecord:
    document = documents.find_by_id(document_id)
    if document is None or document.owner_id != identity.user_id:
        raise HTTPException(status_code=404, detail="Not found")
    return document

@router.get("/documents", response_model=List[DocumentRecord], summary="List the caller's documents, newest first")
def list_documents(
    identity: Identity = Depends(get_identity),
    documents: DocumentRepository = Depends(get_document_repository)
):
    return documents.find_many(DocumentFilter(owner_id=identity.user_id))

@router.get("/documents/{document_id}", response_model=DocumentRecord, summary="Get a document and its upload status")
def get_document(
    document_id: str,
    identity: Identity = Depends(get_identity),
    documents: DocumentRepository = Depends(get_document_repository)
):
    return _owned_document(documents, identity, document_id)

@router.get("/documents/{document_id}/messages", response_model=MessagePage, summary="Page through a document's conversation, newest first")
def list_messages(
    document_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    cursor: Optional[str] = None,
    identity: Identity = Depends(get_identity),
    pipeline: ChatPipeline = Depends(get_chat_pipeline)
):
    try:
        return pipeline.list_messages(identity, document_id, limit=limit, cursor=cursor)
    except NotFound:
        raise HTTPException(status_code=404, detail="Not found")

@router.get("/plan", response_model=PlanLimits, summary="Plan limits for the caller's subscription tier")
def get_plan(identity: Identity = Depends(get_identity)):
    return identity.limits

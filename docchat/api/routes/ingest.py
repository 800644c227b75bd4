import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from docchat.api.auth import get_identity
from docchat.core.errors import (
    DocChatError,
    EmptyContentError,
    FetchError,
    QuotaExceeded,
    VectorIndexError,
)
from docchat.core.pipeline.ingestion import IngestionPipeline
from docchat.models.document import DocumentFilter, DocumentRecord, UploadCompleteEvent, UploadStatus
from docchat.models.identity import Identity
from docchat.storage.base import DocumentRepository

router = APIRouter()
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    FetchError: 502,
    EmptyContentError: 422,
    QuotaExceeded: 403,
    VectorIndexError: 502,
}

class UploadCompleteRequest(BaseModel):
    storage_key: str
    name: str
    url: str

# Dependencies to get components from app state
def get_ingestion_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.ingestion_pipeline

def get_document_repository(request: Request) -> DocumentRepository:
    return request.app.state.documents

@router.post("/ingest", response_model=DocumentRecord, summary="Handle an upload-complete event and index the document")
def ingest_file(
    body: UploadCompleteRequest,
    identity: Identity = Depends(get_identity),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
    documents: DocumentRepository = Depends(get_document_repository)
):
    """
    1. Builds the UploadCompleteEvent for the authenticated owner.
    2. Runs ingestion synchronously so failures reach the upload layer.
    3. On failure responds with the document id and FAILED status only.
    """
    event = UploadCompleteEvent(
        owner_id=identity.user_id,
        storage_key=body.storage_key,
        name=body.name,
        url=body.url
    )
    logger.info(f"Upload complete for key {event.storage_key} by {identity.user_id}")

    try:
        return pipeline.run(event, identity.limits)
    except DocChatError as e:
        found = documents.find_many(
            DocumentFilter(owner_id=event.owner_id, storage_key=event.storage_key),
            limit=1
        )
        return JSONResponse(
            status_code=ERROR_STATUS.get(type(e), 500),
            content={
                "document_id": found[0].id if found else None,
                "status": UploadStatus.failed.value,
                "error": e.kind
            }
        )

import logging
from fastapi import APIRouter, Depends, Request, HTTPException
from fastapi.responses import StreamingResponse

from docchat.api.auth import get_identity
from docchat.core.errors import DocChatError, NotFound
from docchat.core.pipeline.chat import ChatPipeline
from docchat.models.identity import Identity
from docchat.models.message import SendMessageRequest

router = APIRouter()
logger = logging.getLogger(__name__)

# Dependency to get ChatPipeline from app state
def get_chat_pipeline(request: Request) -> ChatPipeline:
    return request.app.state.chat_pipeline

@router.post("/message", summary="Send a chat message about a document and stream the answer")
def send_message(
    body: SendMessageRequest,
    identity: Identity = Depends(get_identity),
    pipeline: ChatPipeline = Depends(get_chat_pipeline)
):
    """
    Streams the answer as raw text chunks. Errors raised before the first
    chunk become an error status; a failure mid-stream aborts the response.
    """
    try:
        chunks = pipeline.respond(identity, body.document_id, body.message)
    except NotFound:
        raise HTTPException(status_code=404, detail="Not found")
    except DocChatError as e:
        logger.error(f"Chat turn failed for {body.document_id} ({e.kind}): {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

    return StreamingResponse(
        chunks,
        media_type="text/plain; charset=utf-8"
    )

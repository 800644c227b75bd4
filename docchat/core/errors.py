"""
Exception classes shared by the ingestion pipeline, the chat pipeline and the
chat client.
"""


class DocChatError(Exception):
    """Base exception for DocChat"""
    kind = "error"


class Unauthorized(DocChatError):
    """Missing or invalid identity"""
    kind = "unauthorized"


class NotFound(DocChatError):
    """Document missing or not owned by the caller"""
    kind = "not_found"


class FetchError(DocChatError):
    """Raw document content could not be retrieved"""
    kind = "fetch_error"


class EmptyContentError(DocChatError):
    """No page with extractable text"""
    kind = "empty_content"


class QuotaExceeded(DocChatError):
    """Page count over the plan limit"""
    kind = "quota_exceeded"


class VectorIndexError(DocChatError):
    """Embedding or vector index failure"""
    kind = "index_error"


class GenerationError(DocChatError):
    """Text-generation failure, including mid-stream termination"""
    kind = "generation_error"


class StreamReadError(DocChatError):
    """Malformed, empty or prematurely closed response stream"""
    kind = "read_error"


class ChatRequestError(DocChatError):
    """Chat endpoint answered with a non-200 status"""
    kind = "request_error"

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message or f"Chat request failed with status {status_code}")
        self.status_code = status_code


class SendInProgress(DocChatError):
    """A message is already being sent for this conversation"""
    kind = "send_in_progress"


class InvalidStatusTransition(DocChatError):
    kind = "invalid_status_transition"


class DuplicateRecord(DocChatError):
    kind = "duplicate_record"

import logging
import uuid
from typing import Iterator, List, Optional, Tuple
from docchat.core.errors import GenerationError, NotFound, VectorIndexError
from docchat.core.embed.embedder import Embedder
from docchat.core.generate.llm_client import LLMClient
from docchat.core.generate.prompt_builder import PromptBuilder
from docchat.models.document import DocumentRecord
from docchat.models.identity import Identity
from docchat.models.message import ChatMessage, MessageFilter, MessagePage, SortOrder
from docchat.models.passage import RetrievedPassage
from docchat.storage.base import DocumentRepository, MessageRepository, VectorStore
from docchat.config.settings import settings

logger = logging.getLogger(__name__)

class ChatPipeline:
    """
    Retrieval-augmented answer for one user turn.
    Sequence: authorize -> save user turn -> retrieve -> load history -> build prompt -> stream -> save answer
    """

    def __init__(self,
                 documents: DocumentRepository,
                 messages: MessageRepository,
                 vector_store: VectorStore,
                 embedder: Optional[Embedder] = None,
                 llm_client: Optional[LLMClient] = None):
        self.documents = documents
        self.messages = messages
        self.vector_store = vector_store
        self.embedder = embedder or Embedder()
        self.llm_client = llm_client or LLMClient()
        self.prompt_builder = PromptBuilder()
        self.config = settings.retrieval

    def respond(self, identity: Identity, document_id: str, message_text: str) -> Iterator[str]:
        """
        Runs every step up to the first generated chunk eagerly, so that
        authorization, retrieval and connection failures raise here.
        The returned iterator yields the remaining chunks and saves the
        assistant message once the stream ends normally.
        """
        document = self._authorize(identity, document_id)
        logger.info(f"Chat turn for document {document.id} by user {identity.user_id}")

        # 1. Save the user's turn before any downstream work
        self.messages.create(ChatMessage(
            id=str(uuid.uuid4()),
            text=message_text,
            is_user_message=True,
            document_id=document.id,
            user_id=identity.user_id
        ))

        # 2. Retrieve
        passages = self._retrieve(document.id, message_text)

        # 3. History, oldest first
        history = self._recent_history(document.id)

        # 4. Prompt
        messages = self.prompt_builder.build_messages(message_text, history, passages)

        # 5. Generation
        first, chunks = self._start_generation(messages)

        return self._stream(identity, document.id, first, chunks)

    def list_messages(self,
                      identity: Identity,
                      document_id: str,
                      limit: Optional[int] = None,
                      cursor: Optional[str] = None) -> MessagePage:
        """
        Newest-first page of the conversation. `cursor` is the id of the
        oldest message on the previous page; the page starts strictly after
        it in (created_at, id) order, so equal timestamps are never skipped.
        """
        document = self._authorize(identity, document_id)
        limit = limit or self.config.messages_page_size

        before = None
        if cursor is not None:
            anchor = self.messages.find_by_id(cursor)
            if anchor is None or anchor.document_id != document.id:
                raise NotFound(f"Message {cursor} not found")
            before = (anchor.created_at, anchor.id)

        rows = self.messages.find_many(
            MessageFilter(document_id=document.id, before=before),
            order=SortOrder.desc,
            limit=limit + 1
        )
        next_cursor = None
        if len(rows) > limit:
            rows = rows[:limit]
            next_cursor = rows[-1].id
        return MessagePage(messages=rows, next_cursor=next_cursor)

    def _authorize(self, identity: Identity, document_id: str) -> DocumentRecord:
        document = self.documents.find_by_id(document_id)
        if document is None or document.owner_id != identity.user_id:
            raise NotFound(f"Document {document_id} not found")
        return document

    def _retrieve(self, document_id: str, question: str) -> List[RetrievedPassage]:
        try:
            vector = self.embedder.embed_query(question)
            passages = self.vector_store.query(document_id, vector, self.config.top_k)
        except Exception as e:
            raise VectorIndexError(f"Retrieval failed for {document_id}: {e}") from e
        logger.info(f"Retrieved {len(passages)} passages for {document_id}")
        return passages

    def _recent_history(self, document_id: str) -> List[ChatMessage]:
        recent = self.messages.find_many(
            MessageFilter(document_id=document_id),
            order=SortOrder.desc,
            limit=self.config.history_limit
        )
        return list(reversed(recent))

    def _start_generation(self, messages: List[dict]) -> Tuple[Optional[str], Iterator[str]]:
        """Opens the stream and pulls the first chunk (None if the stream is empty)."""
        try:
            chunks = iter(self.llm_client.generate(
                messages,
                temperature=settings.llm.temperature,
                max_tokens=settings.llm.max_tokens
            ))
            return next(chunks, None), chunks
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Generation failed: {e}") from e

    def _stream(self,
                identity: Identity,
                document_id: str,
                first: Optional[str],
                chunks: Iterator[str]) -> Iterator[str]:
        full_completion = ""
        try:
            if first:
                full_completion += first
                yield first
            for chunk in chunks:
                if not chunk:
                    continue
                full_completion += chunk
                yield chunk
        except GenerationError:
            logger.error(f"Generation stream failed for {document_id} after {len(full_completion)} chars")
            raise
        except Exception as e:
            logger.error(f"Generation stream failed for {document_id}: {e}")
            raise GenerationError(f"Stream error: {e}") from e
        finally:
            # Releases the upstream connection when the client disconnects
            close = getattr(chunks, "close", None)
            if close is not None:
                close()

        if full_completion.strip():
            self.messages.create(ChatMessage(
                id=str(uuid.uuid4()),
                text=full_completion,
                is_user_message=False,
                document_id=document_id,
                user_id=identity.user_id
            ))
        else:
            logger.warning(f"Blank completion for {document_id}; nothing saved")

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docchat.config.settings import settings
from docchat.storage.qdrant_store import QdrantStore
from docchat.storage.record_store import LocalDocumentRepository, LocalMessageRepository
from docchat.core.embed.embedder import Embedder
from docchat.core.generate.llm_client import LLMClient
from docchat.core.pipeline.ingestion import IngestionPipeline
from docchat.core.pipeline.chat import ChatPipeline

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup: Initialize singletons ---
    logger.info("Initializing DocChat storage and pipelines...")

    # 1. Storage
    vector_store = QdrantStore()
    documents = LocalDocumentRepository(settings.storage.documents_path)
    messages = LocalMessageRepository(settings.storage.messages_path)

    # 2. Pipelines share one embedding model and one LLM client
    embedder = Embedder()
    ingestion_pipeline = IngestionPipeline(
        documents=documents,
        vector_store=vector_store,
        embedder=embedder
    )
    chat_pipeline = ChatPipeline(
        documents=documents,
        messages=messages,
        vector_store=vector_store,
        embedder=embedder,
        llm_client=LLMClient()
    )

    # 3. Store in app.state for dependency injection
    app.state.vector_store = vector_store
    app.state.documents = documents
    app.state.messages = messages
    app.state.ingestion_pipeline = ingestion_pipeline
    app.state.chat_pipeline = chat_pipeline

    logger.info("Initialization complete. All systems ready.")

    yield

    logger.info("Shutting down DocChat backend...")

def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="DocChat API",
        description="Chat with your PDF documents",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "ok"}

    from docchat.api.routes import ingest, message, documents

    app.include_router(ingest.router, prefix="/api", tags=["Ingestion"])
    app.include_router(message.router, prefix="/api", tags=["Chat"])
    app.include_router(documents.router, prefix="/api", tags=["Documents"])

    return app

app = create_app()

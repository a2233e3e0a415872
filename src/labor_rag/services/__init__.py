"""Service layer combining ingestion and grounded chat."""

from .chat import ChatAnswer, ChatOrchestrator, ChatTurn, Source
from .rag import RAGService, get_rag_service, reset_rag_service

__all__ = [
    "ChatAnswer",
    "ChatOrchestrator",
    "ChatTurn",
    "RAGService",
    "Source",
    "get_rag_service",
    "reset_rag_service",
]

# AI Services Package
from .openai_service import OpenAIService, get_openai_service, OpenAIServiceError
from .embedding import EmbeddingService, normalize_embedding, coerce_embedding
from .retrieval import SimilarityRetriever, RetrievedProduct
from .context import ContextAssembler, ContextTier, AssembledContext, select_context_tier
from .conversation import (
    ChatTurn,
    ConversationService,
    latest_user_text,
    normalize_history,
    normalize_turn,
    reconcile_pending,
)
from .orchestrator import ChatOrchestrator, PreparedTurn

__all__ = [
    'OpenAIService',
    'get_openai_service',
    'OpenAIServiceError',
    'EmbeddingService',
    'normalize_embedding',
    'coerce_embedding',
    'SimilarityRetriever',
    'RetrievedProduct',
    'ContextAssembler',
    'ContextTier',
    'AssembledContext',
    'select_context_tier',
    'ChatTurn',
    'ConversationService',
    'latest_user_text',
    'normalize_history',
    'normalize_turn',
    'reconcile_pending',
    'ChatOrchestrator',
    'PreparedTurn',
]

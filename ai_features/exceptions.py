"""
Assistant error taxonomy.

Grounding failures (embedding, retrieval) are absorbed by the orchestrator;
everything else is reported to the caller.
"""


class AssistantError(Exception):
    """Base class for assistant pipeline errors"""
    code = 'assistant_error'


class BusinessNotFoundError(AssistantError):
    """Authenticated caller has not created a store yet"""
    code = 'business_not_found'


class EmbeddingUnavailableError(AssistantError):
    """Embedding call failed or returned unusable data"""
    code = 'embedding_unavailable'


class GenerationError(AssistantError):
    """Generative model call failed, timed out or aborted"""
    code = 'generation_error'


class ConversationAccessDenied(AssistantError):
    """Chat session does not belong to the requesting store"""
    code = 'access_denied'


class InvalidMessageError(AssistantError):
    """Message has an empty body or an unsupported role"""
    code = 'invalid_message'


class ConversationPersistenceError(AssistantError):
    """The durable store rejected a conversation write"""
    code = 'persistence_error'

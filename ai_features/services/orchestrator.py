"""
Chat Orchestrator
Runs one assistant turn: persist the user message, ground the question in
the catalog, stream the model answer and persist it on clean completion.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from django.db import DatabaseError

from inventory.models import Product
from ..conf import assistant_setting
from ..exceptions import (
    ConversationPersistenceError,
    EmbeddingUnavailableError,
    GenerationError,
    InvalidMessageError,
)
from ..models import ChatMessage, ChatSession
from ..streaming import EVENT_ERROR, EVENT_FINISH, EVENT_START, EVENT_TEXT_DELTA, make_event
from .context import AssembledContext, ContextAssembler
from .conversation import ChatTurn, ConversationService
from .embedding import EmbeddingService
from .openai_service import OpenAIService, OpenAIServiceError, get_openai_service
from .retrieval import SimilarityRetriever

logger = logging.getLogger(__name__)


@dataclass
class PreparedTurn:
    """Everything needed to stream one answer, computed before the first byte"""
    session: ChatSession
    user_message: Optional[ChatMessage]
    context: AssembledContext
    model_messages: List[Dict[str, str]] = field(default_factory=list)


class ChatOrchestrator:
    """Retrieval-augmented chat pipeline for one business"""

    def __init__(
        self,
        business,
        openai_service: Optional[OpenAIService] = None,
        embedding_service: Optional[EmbeddingService] = None,
        retriever: Optional[SimilarityRetriever] = None,
        assembler: Optional[ContextAssembler] = None,
        conversation: Optional[ConversationService] = None,
        history_limit: Optional[int] = None,
    ):
        self.business = business
        self.openai = openai_service or get_openai_service()
        self.embeddings = embedding_service or EmbeddingService(openai_service=self.openai)
        self.retriever = retriever or SimilarityRetriever()
        self.assembler = assembler or ContextAssembler()
        self.conversation = conversation or ConversationService(business)
        self.history_limit = history_limit or assistant_setting('HISTORY_LIMIT')

    def build_context(self, query_text: str) -> AssembledContext:
        """
        Ground ``query_text`` in the catalog.

        Embedding and retrieval failures degrade to an ungrounded prompt,
        they never fail the turn.
        """
        catalog_count = Product.objects.for_business(self.business.id).count()
        candidates = []

        if catalog_count:
            try:
                query_vector = self.embeddings.embed_query(query_text)
            except EmbeddingUnavailableError as exc:
                logger.warning(f"Embedding unavailable for business {self.business.id}, answering ungrounded: {exc}")
                query_vector = None

            if query_vector is not None:
                try:
                    candidates = self.retriever.retrieve(self.business.id, query_vector)
                except DatabaseError as exc:
                    logger.warning(f"Retrieval failed for business {self.business.id}, answering ungrounded: {exc}")

        context = self.assembler.assemble(candidates, catalog_count)
        logger.info(
            f"Business {self.business.id}: {len(context.products)} grounding products, tier={context.tier.value}"
        )
        return context

    def prepare_turn(self, user_text: str, chat_id=None) -> PreparedTurn:
        """
        Resolve the session, persist the user message and assemble context.

        The user message is saved before any model call so a failed
        generation never loses it. Blank text skips persistence and
        retrieval; streaming such a turn reports an error without calling
        the model.

        Raises:
            ConversationAccessDenied: ``chat_id`` belongs to another business
            ConversationPersistenceError: the session or message write failed
        """
        if chat_id:
            session = self.conversation.get_session(chat_id)
        else:
            session = self.conversation.get_or_create_session()

        history = self.conversation.history_turns(session, limit=self.history_limit)

        user_message = None
        if user_text and user_text.strip():
            user_message = self.conversation.append_message(session, ChatMessage.ROLE_USER, user_text)

        context = self.build_context(user_text)

        model_messages = [{'role': 'system', 'content': context.system_prompt}]
        model_messages.extend(turn.as_model_message() for turn in history)
        if user_message is not None:
            model_messages.append(ChatTurn.user(user_text).as_model_message())

        return PreparedTurn(
            session=session,
            user_message=user_message,
            context=context,
            model_messages=model_messages,
        )

    def stream(self, turn: PreparedTurn) -> Iterator[Dict[str, Any]]:
        """
        Yield stream events for a prepared turn.

        Text deltas are relayed as they arrive. The assistant message is
        persisted only after the model stream ends cleanly; an upstream
        error or the consumer closing the generator leaves no assistant row.
        """
        session = turn.session
        yield make_event(EVENT_START, chat_id=str(session.id), grounding=turn.context.tier.value)

        if turn.user_message is None:
            logger.info(f"Chat {session.id}: no user text in request, model not called")
            yield make_event(
                EVENT_ERROR,
                error=InvalidMessageError.code,
                message="Type a message for the assistant.",
            )
            return

        start_time = time.time()
        chunks = []
        deltas = self.openai.stream_chat_completion(turn.model_messages)
        try:
            for delta in deltas:
                chunks.append(delta)
                yield make_event(EVENT_TEXT_DELTA, delta=delta)
        except GeneratorExit:
            logger.warning(f"Client left chat {session.id} mid-stream; assistant reply discarded")
            raise
        except OpenAIServiceError as exc:
            logger.error(f"Generation failed for chat {session.id}: {exc}")
            yield make_event(
                EVENT_ERROR,
                error=GenerationError.code,
                message="The assistant could not finish its answer. Please try again.",
            )
            return
        finally:
            deltas.close()

        answer = ''.join(chunks)
        if not answer.strip():
            logger.warning(f"Model returned an empty answer for chat {session.id}")
            yield make_event(EVENT_ERROR, error='empty_response', message="The assistant returned no answer.")
            return

        try:
            message = self.conversation.append_message(session, ChatMessage.ROLE_ASSISTANT, answer)
        except ConversationPersistenceError as exc:
            logger.error(f"Assistant reply for chat {session.id} could not be saved: {exc}")
            yield make_event(
                EVENT_ERROR,
                error=ConversationPersistenceError.code,
                message="The answer could not be saved. Please try again.",
            )
            return

        processing_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Chat {session.id} answered in {processing_time_ms}ms ({len(answer)} chars)")
        yield make_event(EVENT_FINISH, message_id=message.id)

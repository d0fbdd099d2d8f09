"""
AI Features Views
REST API endpoints for the store assistant.
"""

import logging

from django.http import StreamingHttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.business_context import get_business_for_user
from .exceptions import (
    BusinessNotFoundError,
    ConversationAccessDenied,
    ConversationPersistenceError,
    InvalidMessageError,
)
from .serializers import (
    AppendMessageRequestSerializer,
    ChatMessageSerializer,
    ChatRequestSerializer,
    ChatSessionSerializer,
)
from .services import (
    ChatOrchestrator,
    ConversationService,
    latest_user_text,
    normalize_history,
)
from .streaming import encode_events

logger = logging.getLogger(__name__)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def require_business(user):
    """
    Get business from user or raise error response.
    Returns (business, None) on success or (None, error_response) on failure.
    """
    business = get_business_for_user(user)
    if not business:
        error_response = Response(
            {
                'error': BusinessNotFoundError.code,
                'message': 'Create your store first before using the assistant.'
            },
            status=status.HTTP_400_BAD_REQUEST
        )
        return None, error_response
    return business, None


def _access_denied_response():
    return Response(
        {'error': ConversationAccessDenied.code, 'message': 'This chat does not belong to your store.'},
        status=status.HTTP_403_FORBIDDEN
    )


def _persistence_error_response():
    return Response(
        {'error': ConversationPersistenceError.code, 'message': 'The conversation could not be saved. Please try again.'},
        status=status.HTTP_503_SERVICE_UNAVAILABLE
    )


# ============================================================================
# CHAT
# ============================================================================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def chat(request):
    """
    Stream an assistant answer grounded in the store catalog

    POST /ai/api/chat/

    Request:
    {
        "messages": [{"role": "user", "content": "Is the spicy kerupuk in stock?"}],
        "chat_id": "uuid"  // Optional
    }

    Response: text/event-stream of JSON events
        {"type": "start", "chat_id": "...", "grounding": "grounded"}
        {"type": "text-delta", "delta": "..."}
        {"type": "finish", "message_id": 42}
    or, when generation or saving fails mid-stream,
        {"type": "error", "error": "generation_error", "message": "..."}
    """
    serializer = ChatRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    business, error_response = require_business(request.user)
    if error_response:
        return error_response

    turns = normalize_history(serializer.validated_data['messages'])
    user_text = latest_user_text(turns)
    chat_id = serializer.validated_data.get('chat_id')

    orchestrator = ChatOrchestrator(business)
    try:
        prepared = orchestrator.prepare_turn(user_text, chat_id=chat_id)
    except ConversationAccessDenied:
        return _access_denied_response()
    except ConversationPersistenceError as exc:
        logger.error(f"Chat turn for business {business.id} failed before streaming: {exc}")
        return _persistence_error_response()

    response = StreamingHttpResponse(
        encode_events(orchestrator.stream(prepared)),
        content_type='text/event-stream'
    )
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def chat_session(request):
    """
    Get or create the store chat session with its history

    GET /ai/api/chat/session/

    Response:
    {
        "chat_id": "uuid",
        "created_at": "...",
        "messages": [{"id": 1, "role": "user", "content": "...", "created_at": "..."}]
    }
    """
    business, error_response = require_business(request.user)
    if error_response:
        return error_response

    conversation = ConversationService(business)
    try:
        session = conversation.get_or_create_session()
    except ConversationPersistenceError:
        return _persistence_error_response()

    history = conversation.load_history(session)
    serializer = ChatSessionSerializer(session, context={'history': history})
    return Response(serializer.data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def append_chat_message(request):
    """
    Save one message to the store chat

    POST /ai/api/chat/messages/

    Request:
    {
        "chat_id": "uuid",
        "role": "user",
        "content": "..."
    }
    """
    serializer = AppendMessageRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    business, error_response = require_business(request.user)
    if error_response:
        return error_response

    data = serializer.validated_data
    conversation = ConversationService(business)
    try:
        message = conversation.append_message(data['chat_id'], data['role'], data['content'])
    except ConversationAccessDenied:
        return _access_denied_response()
    except InvalidMessageError as exc:
        return Response({'error': InvalidMessageError.code, 'message': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except ConversationPersistenceError:
        return _persistence_error_response()

    return Response(ChatMessageSerializer(message).data, status=status.HTTP_201_CREATED)

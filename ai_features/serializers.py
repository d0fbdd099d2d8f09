"""
AI Features Serializers
Request validation and message representation for the store assistant.
"""

from rest_framework import serializers
from .models import ChatMessage, ChatSession


class ChatMessageSerializer(serializers.ModelSerializer):
    """Serializer for persisted chat messages"""

    class Meta:
        model = ChatMessage
        fields = ['id', 'role', 'content', 'created_at']
        read_only_fields = fields


class ChatSessionSerializer(serializers.ModelSerializer):
    """Session with its full user/assistant history"""

    chat_id = serializers.UUIDField(source='id', read_only=True)
    messages = serializers.SerializerMethodField()

    class Meta:
        model = ChatSession
        fields = ['chat_id', 'created_at', 'messages']
        read_only_fields = fields

    def get_messages(self, obj):
        history = self.context.get('history')
        if history is None:
            history = obj.messages.filter(role__in=ChatMessage.CONVERSATION_ROLES)
        return ChatMessageSerializer(history, many=True).data


class ChatRequestSerializer(serializers.Serializer):
    """
    Body of the streaming chat endpoint.

    ``messages`` is the client-side history; only the latest user turn is
    used, the persisted log is the history sent to the model.
    """

    messages = serializers.ListField(
        child=serializers.JSONField(),
        allow_empty=True,
        help_text="Client history: {role, content} or {role, parts: [{type: 'text', text}]}"
    )
    chat_id = serializers.UUIDField(
        required=False,
        allow_null=True,
        help_text="Optional: the caller's chat session id"
    )


class AppendMessageRequestSerializer(serializers.Serializer):
    """Serializer for appending one message to the caller's session"""

    chat_id = serializers.UUIDField(required=True)
    role = serializers.ChoiceField(choices=ChatMessage.ROLE_CHOICES)
    content = serializers.CharField(
        required=True,
        trim_whitespace=False,
        max_length=10000
    )

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Message content must not be empty.")
        return value

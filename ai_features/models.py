"""
AI Features Models
Assistant chat sessions and their message log.
"""

import uuid
from django.db import models
from accounts.models import Business


class ChatSession(models.Model):
    """Single assistant thread of a business (one chat room per store)"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.OneToOneField(
        Business,
        on_delete=models.CASCADE,
        related_name='chat_session',
        help_text="Unique: a store never has more than one chat session"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ai_chat_sessions'
        verbose_name = 'Chat Session'
        verbose_name_plural = 'Chat Sessions'

    def __str__(self):
        return f"Chat {self.id} - {self.business.name}"


class ChatMessage(models.Model):
    """One turn in a chat session; append-only"""

    ROLE_USER = 'user'
    ROLE_ASSISTANT = 'assistant'
    ROLE_CHOICES = [
        (ROLE_USER, 'User'),
        (ROLE_ASSISTANT, 'Assistant'),
    ]
    CONVERSATION_ROLES = (ROLE_USER, ROLE_ASSISTANT)

    # Auto-increment key doubles as a tie-break for equal timestamps
    id = models.BigAutoField(primary_key=True)
    session = models.ForeignKey(
        ChatSession,
        on_delete=models.CASCADE,
        related_name='messages'
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'ai_chat_messages'
        ordering = ['created_at', 'id']
        verbose_name = 'Chat Message'
        verbose_name_plural = 'Chat Messages'
        indexes = [
            models.Index(fields=['session', 'created_at'], name='chat_message_session_idx'),
        ]

    def __str__(self):
        preview = self.content[:40]
        return f"{self.get_role_display()}: {preview}"

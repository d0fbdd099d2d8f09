"""
AI Features URL Configuration
"""

from django.urls import path
from . import views

app_name = 'ai_features'

urlpatterns = [
    # Store assistant
    path('api/chat/', views.chat, name='chat'),
    path('api/chat/session/', views.chat_session, name='chat-session'),
    path('api/chat/messages/', views.append_chat_message, name='chat-messages'),
]

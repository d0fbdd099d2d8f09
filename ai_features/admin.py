from django.contrib import admin
from .models import ChatSession, ChatMessage


class ChatMessageInline(admin.TabularInline):
    model = ChatMessage
    fields = ['role', 'content', 'created_at']
    readonly_fields = fields
    extra = 0
    can_delete = False
    ordering = ['created_at', 'id']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ChatSession)
class ChatSessionAdmin(admin.ModelAdmin):
    list_display = ['id', 'business', 'created_at']
    search_fields = ['business__name']
    readonly_fields = ['id', 'business', 'created_at']
    inlines = [ChatMessageInline]


@admin.register(ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    list_display = ['session', 'role', 'created_at']
    list_filter = ['role', 'created_at']
    search_fields = ['session__business__name', 'content']
    readonly_fields = ['id', 'session', 'role', 'content', 'created_at']
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

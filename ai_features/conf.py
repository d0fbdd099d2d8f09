"""
Assistant configuration lookup.
Reads settings.AI_ASSISTANT with fallbacks so partial overrides work.
"""

from django.conf import settings

DEFAULTS = {
    'ASSISTANT_NAME': 'ShikiPilot',
    'EMBEDDING_MODEL': 'text-embedding-3-small',
    'EMBEDDING_DIMENSIONS': 768,
    'CHAT_MODEL': 'gpt-4o-mini',
    'RAG_TOP_K': 3,
    'EMBEDDING_TIMEOUT': 10.0,
    'CHAT_TIMEOUT': 60.0,
    'HISTORY_LIMIT': 20,
    'TEMPERATURE': 0.7,
    'CURRENCY_LABEL': 'Rp',
}


def assistant_setting(name):
    """Return one assistant setting, falling back to the built-in default"""
    configured = getattr(settings, 'AI_ASSISTANT', None) or {}
    if name in configured:
        return configured[name]
    return DEFAULTS[name]

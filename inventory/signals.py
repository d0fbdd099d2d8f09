"""
Inventory Signal Handlers

Schedule an embedding refresh whenever a product is created or its
description changes. The refresh runs after the surrounding transaction
commits so the task always reads the committed description.

SQLite connections also get the vector distance function used for ranking.
"""

from django.db import transaction
from django.db.backends.signals import connection_created
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .vectors import register_sqlite_functions


@receiver(pre_save, sender='inventory.Product')
def detect_description_change(sender, instance, raw=False, **kwargs):
    """Flag products whose embedding no longer matches their description."""
    if raw:
        instance._embedding_stale = False
        return

    if instance._state.adding:
        instance._embedding_stale = True
        return

    previous = (
        sender.objects
        .filter(pk=instance.pk)
        .values_list('description', flat=True)
        .first()
    )
    instance._embedding_stale = previous != instance.description or instance.embedding is None


@receiver(post_save, sender='inventory.Product')
def schedule_embedding_refresh(sender, instance, raw=False, **kwargs):
    if raw or not getattr(instance, '_embedding_stale', False):
        return

    from .tasks import refresh_product_embedding

    product_id = str(instance.pk)
    transaction.on_commit(lambda: refresh_product_embedding.delay(product_id))


@receiver(connection_created)
def add_vector_functions(sender, connection, **kwargs):
    """Give SQLite connections the cosine distance used for catalog ranking."""
    if connection.vendor == 'sqlite':
        register_sqlite_functions(connection)

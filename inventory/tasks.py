"""
Celery tasks for Inventory Management
Keeps catalog embeddings current for the store assistant
"""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    name='inventory.refresh_product_embedding',
    max_retries=3,
    default_retry_delay=30,
)
def refresh_product_embedding(self, product_id: str):
    """
    Recompute the embedding of one product from its current description.

    Embedding failures are retried with a growing delay. While a product
    has no embedding it is simply left out of assistant retrieval.

    Args:
        product_id: UUID of the product

    Returns:
        dict: Refresh result
    """
    from ai_features.exceptions import EmbeddingUnavailableError
    from inventory.embeddings import update_product_embedding

    try:
        result = update_product_embedding(product_id)
    except EmbeddingUnavailableError as exc:
        countdown = self.default_retry_delay * (2 ** self.request.retries)
        logger.warning(
            f"Embedding for product {product_id} unavailable (attempt {self.request.retries + 1}): {exc}"
        )
        raise self.retry(exc=exc, countdown=countdown)

    return {'product_id': product_id, 'status': result}


@shared_task(name='inventory.backfill_missing_embeddings')
def backfill_missing_embeddings(limit: int = 500):
    """
    Queue embedding refreshes for products that still have none.

    Runs hourly from celery beat to pick up items whose refresh ran out of
    retries.
    """
    from inventory.models import Product

    product_ids = list(
        Product.objects
        .filter(embedding__isnull=True)
        .order_by('created_at')
        .values_list('id', flat=True)[:limit]
    )
    for product_id in product_ids:
        refresh_product_embedding.delay(str(product_id))

    if product_ids:
        logger.info(f"Queued embedding refresh for {len(product_ids)} products")
    return len(product_ids)

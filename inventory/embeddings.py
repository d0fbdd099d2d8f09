"""
Catalog embedding maintenance.
Keeps Product.embedding in sync with Product.description.
"""

import logging

from .models import Product

logger = logging.getLogger(__name__)

UPDATED = 'updated'
STALE = 'stale'
MISSING = 'missing'


def update_product_embedding(product_id, embedding_service=None):
    """
    Embed the current description of a product and store the vector.

    The write is a single-row UPDATE guarded on the embedded description,
    so a concurrent description edit is never paired with an older vector.

    Returns:
        'updated', 'stale' (description changed meanwhile) or 'missing'

    Raises:
        EmbeddingUnavailableError: the embedding model failed
    """
    from ai_features.services import EmbeddingService

    row = Product.objects.filter(pk=product_id).values('description', 'business_id').first()
    if row is None:
        return MISSING

    description = row['description']
    service = embedding_service or EmbeddingService()
    vector = service.embed(description)

    updated = Product.objects.filter(pk=product_id, description=description).update(embedding=vector)
    if not updated:
        logger.info(f"Description of product {product_id} changed while embedding; result discarded")
        return STALE

    logger.info(f"Stored embedding for product {product_id} of business {row['business_id']}")
    return UPDATED

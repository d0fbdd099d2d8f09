"""
Similarity Retriever
Ranks a store's embedded catalog items against a query vector.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from inventory.models import Product
from inventory.vectors import CosineDistance
from ..conf import assistant_setting

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievedProduct:
    """Catalog row selected as grounding context"""
    id: str
    name: str
    price: int
    stock: int
    description: str
    distance: float


class SimilarityRetriever:
    """Top-K nearest catalog items of one business"""

    def __init__(self, top_k: Optional[int] = None, dimensions: Optional[int] = None):
        self.top_k = top_k or assistant_setting('RAG_TOP_K')
        self.dimensions = dimensions or assistant_setting('EMBEDDING_DIMENSIONS')

    def ranked(self, business_id, query_vector: Sequence[float]):
        """
        Embedded items of ``business_id`` annotated with their cosine distance
        to ``query_vector``, nearest first. Ties keep creation order.
        """
        return (
            Product.objects
            .for_business(business_id)
            .with_embedding()
            .annotate(distance=CosineDistance('embedding', list(query_vector)))
            .filter(distance__isnull=False)
            .order_by('distance', 'created_at', 'id')
        )

    def retrieve(self, business_id, query_vector: Sequence[float]) -> List[RetrievedProduct]:
        """
        Return up to ``top_k`` items of ``business_id`` by ascending distance.

        Items of other businesses never enter the candidate set. An empty
        list is a normal result.
        """
        if len(query_vector) != self.dimensions:
            raise ValueError(
                f"Query vector must have {self.dimensions} components, got {len(query_vector)}"
            )

        rows = self.ranked(business_id, query_vector).values(
            'id', 'name', 'price', 'stock', 'description', 'distance'
        )[:self.top_k]

        results = [
            RetrievedProduct(
                id=str(row['id']),
                name=row['name'],
                price=row['price'],
                stock=row['stock'],
                description=row['description'],
                distance=row['distance'],
            )
            for row in rows
        ]
        logger.debug(f"Retrieved {len(results)} products for business {business_id}")
        return results

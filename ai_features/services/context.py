"""
Context Assembler
Builds the system instruction that grounds the assistant in catalog data.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from ..conf import assistant_setting
from .retrieval import RetrievedProduct


class ContextTier(str, Enum):
    GROUNDED = 'grounded'
    UNGROUNDED = 'ungrounded'
    NO_CATALOG = 'no_catalog'


def select_context_tier(candidate_count: int, catalog_count: int) -> ContextTier:
    """
    Pick the grounding tier.

    Any candidate means grounded. No candidates but a non-empty catalog
    (nothing embedded yet, empty query, embedding outage) means ungrounded.
    An empty catalog means the catalog is not available yet.
    """
    if candidate_count > 0:
        return ContextTier.GROUNDED
    if catalog_count > 0:
        return ContextTier.UNGROUNDED
    return ContextTier.NO_CATALOG


@dataclass
class AssembledContext:
    tier: ContextTier
    system_prompt: str
    products: List[RetrievedProduct] = field(default_factory=list)


class ContextAssembler:
    """Turn ranked candidates into a system prompt, with ungrounded fallbacks"""

    PERSONA = (
        "You are {name}, the shop assistant of this store. "
        "Answer in a friendly and concise way, in the language the customer uses."
    )

    GROUNDED_INSTRUCTION = (
        "Answer questions using only the product data below. "
        "If the answer is not in the data, say politely that you do not know."
    )

    UNGROUNDED_INSTRUCTION = (
        "No specific product information matched this question. "
        "Help with general questions and do not invent product names, prices or stock."
    )

    NO_CATALOG_INSTRUCTION = (
        "The store catalog is not available yet. "
        "Say politely that product information is not available at the moment."
    )

    def __init__(self, assistant_name: Optional[str] = None, currency_label: Optional[str] = None):
        self.assistant_name = assistant_name or assistant_setting('ASSISTANT_NAME')
        self.currency_label = currency_label or assistant_setting('CURRENCY_LABEL')

    def persona(self) -> str:
        return self.PERSONA.format(name=self.assistant_name)

    def format_product_line(self, product: RetrievedProduct) -> str:
        return (
            f"- {product.name}: {self.currency_label} {product.price}, "
            f"stock {product.stock}. Description: {product.description}"
        )

    def assemble(self, candidates: Sequence[RetrievedProduct], catalog_count: int) -> AssembledContext:
        candidates = list(candidates)
        tier = select_context_tier(len(candidates), catalog_count)

        if tier is ContextTier.GROUNDED:
            product_data = "\n".join(self.format_product_line(p) for p in candidates)
            prompt = f"{self.persona()} {self.GROUNDED_INSTRUCTION}\n\nProduct data:\n{product_data}"
        elif tier is ContextTier.UNGROUNDED:
            prompt = f"{self.persona()} {self.UNGROUNDED_INSTRUCTION}"
        else:
            prompt = f"{self.persona()} {self.NO_CATALOG_INSTRUCTION}"

        return AssembledContext(tier=tier, system_prompt=prompt, products=candidates)

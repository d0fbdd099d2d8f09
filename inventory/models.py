import uuid

from django.core.validators import MinValueValidator
from django.db import models
from pgvector.django import VectorField

from accounts.models import Business

EMBEDDING_DIMENSIONS = 768


class ProductQuerySet(models.QuerySet):
    def for_business(self, business_id):
        return self.filter(business_id=business_id)

    def with_embedding(self):
        return self.filter(embedding__isnull=False)


class Product(models.Model):
    """Catalog item of a store, the knowledge base the assistant answers from"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=200)
    price = models.PositiveIntegerField(
        validators=[MinValueValidator(0)],
        help_text="Unit price in the minor currency unit"
    )
    stock = models.PositiveIntegerField(default=0, validators=[MinValueValidator(0)])
    description = models.TextField(max_length=5000)
    image_url = models.URLField(blank=True, null=True)
    embedding = VectorField(
        dimensions=EMBEDDING_DIMENSIONS,
        null=True,
        blank=True,
        editable=False,
        help_text="Semantic vector of the description"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['business', 'created_at'], name='product_business_created_idx'),
        ]

    def __str__(self):
        return f"{self.name} - {self.business.name}"

    @property
    def has_embedding(self):
        return self.embedding is not None

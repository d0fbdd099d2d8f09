from django.core.management.base import BaseCommand, CommandError

from accounts.models import Business
from ai_features.exceptions import EmbeddingUnavailableError
from ai_features.services import EmbeddingService
from inventory.embeddings import UPDATED, update_product_embedding
from inventory.models import Product


class Command(BaseCommand):
    help = 'Compute catalog embeddings synchronously. Use --missing-only to skip products that already have one.'

    def add_arguments(self, parser):
        parser.add_argument('--business', type=str, help='Slug of a single store to process')
        parser.add_argument('--missing-only', action='store_true', help='Only embed products without an embedding')

    def handle(self, *args, **options):
        qs = Product.objects.all().order_by('created_at')

        slug = options.get('business')
        if slug:
            business = Business.objects.filter(slug=slug).first()
            if business is None:
                raise CommandError(f'No store with slug "{slug}"')
            qs = qs.filter(business=business)

        if options['missing_only']:
            qs = qs.filter(embedding__isnull=True)

        product_ids = list(qs.values_list('id', flat=True))
        self.stdout.write(f'Found {len(product_ids)} products to embed')

        service = EmbeddingService()
        embedded = 0
        failed = 0
        for product_id in product_ids:
            try:
                result = update_product_embedding(product_id, embedding_service=service)
            except EmbeddingUnavailableError as e:
                failed += 1
                self.stdout.write(self.style.ERROR(f'Failed to embed {product_id}: {e}'))
                continue
            if result == UPDATED:
                embedded += 1
            else:
                self.stdout.write(self.style.WARNING(f'Skipped {product_id}: {result}'))

        self.stdout.write(self.style.SUCCESS(f'Embedded {embedded} products, {failed} failed'))

from io import StringIO
from unittest.mock import Mock, patch

from django.core.management import CommandError, call_command
from django.test import TestCase

from ai_features.exceptions import EmbeddingUnavailableError
from ai_features.services import EmbeddingService
from inventory.embeddings import MISSING, STALE, UPDATED, update_product_embedding
from inventory.models import Product
from inventory.tasks import backfill_missing_embeddings, refresh_product_embedding
from tests.utils import axis_vector, create_product, create_store


class EmbeddingRefreshSignalTest(TestCase):

    def setUp(self):
        _, self.business = create_store('owner@tokosatu.com', 'Toko Satu')

    @patch('inventory.tasks.refresh_product_embedding')
    def test_new_product_schedules_refresh_after_commit(self, task):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            product = Product.objects.create(
                business=self.business, name='Kerupuk Pedas', price=12000, stock=5, description='Spicy'
            )
            task.delay.assert_not_called()

        self.assertEqual(len(callbacks), 1)
        task.delay.assert_called_once_with(str(product.id))

    @patch('inventory.tasks.refresh_product_embedding')
    def test_description_change_schedules_refresh(self, task):
        product = create_product(self.business, 'Kerupuk Pedas', embedding=axis_vector(1.0))
        product.description = 'Extra spicy cassava crackers'

        with self.captureOnCommitCallbacks(execute=True):
            product.save()

        task.delay.assert_called_once_with(str(product.id))

    @patch('inventory.tasks.refresh_product_embedding')
    def test_unrelated_edit_does_not_schedule_refresh(self, task):
        product = create_product(self.business, 'Kerupuk Pedas', embedding=axis_vector(1.0))
        product.stock = 2

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            product.save()

        self.assertEqual(callbacks, [])
        task.delay.assert_not_called()

    @patch('inventory.tasks.refresh_product_embedding')
    def test_missing_embedding_is_retried_on_any_save(self, task):
        product = create_product(self.business, 'Kerupuk Pedas')
        product.price = 13000

        with self.captureOnCommitCallbacks(execute=True):
            product.save()

        task.delay.assert_called_once_with(str(product.id))


class UpdateProductEmbeddingTest(TestCase):

    def setUp(self):
        _, self.business = create_store('owner@tokosatu.com', 'Toko Satu')
        self.product = create_product(self.business, 'Kerupuk Pedas', description='Spicy cassava crackers')
        self.embedder = Mock(spec=EmbeddingService)
        self.embedder.embed.return_value = axis_vector(1.0)

    def test_stores_vector_for_current_description(self):
        result = update_product_embedding(self.product.id, embedding_service=self.embedder)

        self.assertEqual(result, UPDATED)
        self.embedder.embed.assert_called_once_with('Spicy cassava crackers')
        self.product.refresh_from_db()
        self.assertEqual(self.product.embedding, axis_vector(1.0))

    def test_description_edited_during_embedding_discards_vector(self):
        def edit_then_embed(text):
            Product.objects.filter(pk=self.product.pk).update(description='Now sweet, not spicy')
            return axis_vector(1.0)
        self.embedder.embed.side_effect = edit_then_embed

        result = update_product_embedding(self.product.id, embedding_service=self.embedder)

        self.assertEqual(result, STALE)
        self.product.refresh_from_db()
        self.assertIsNone(self.product.embedding)

    def test_deleted_product(self):
        product_id = self.product.id
        self.product.delete()

        self.assertEqual(update_product_embedding(product_id, embedding_service=self.embedder), MISSING)
        self.embedder.embed.assert_not_called()

    def test_embedding_failure_leaves_previous_vector(self):
        Product.objects.filter(pk=self.product.pk).update(embedding=axis_vector(0.0, 1.0))
        self.embedder.embed.side_effect = EmbeddingUnavailableError('Request timed out.')

        with self.assertRaises(EmbeddingUnavailableError):
            update_product_embedding(self.product.id, embedding_service=self.embedder)

        self.product.refresh_from_db()
        self.assertEqual(self.product.embedding, axis_vector(0.0, 1.0))


class EmbeddingTasksTest(TestCase):

    def setUp(self):
        _, self.business = create_store('owner@tokosatu.com', 'Toko Satu')

    @patch('inventory.embeddings.update_product_embedding', return_value=UPDATED)
    def test_refresh_task_reports_status(self, update):
        product = create_product(self.business, 'Kerupuk Pedas')

        result = refresh_product_embedding(str(product.id))

        self.assertEqual(result, {'product_id': str(product.id), 'status': UPDATED})
        update.assert_called_once_with(str(product.id))

    @patch('inventory.embeddings.update_product_embedding',
           side_effect=EmbeddingUnavailableError('Request timed out.'))
    def test_refresh_task_surfaces_embedding_failure(self, update):
        product = create_product(self.business, 'Kerupuk Pedas')

        with self.assertRaises(EmbeddingUnavailableError):
            refresh_product_embedding(str(product.id))

    @patch('inventory.tasks.refresh_product_embedding')
    def test_backfill_queues_only_products_without_embedding(self, task):
        missing = create_product(self.business, 'Kerupuk Pedas')
        create_product(self.business, 'Teh Botol', embedding=axis_vector(1.0))

        queued = backfill_missing_embeddings()

        self.assertEqual(queued, 1)
        task.delay.assert_called_once_with(str(missing.id))


@patch('inventory.management.commands.embed_products.EmbeddingService')
class EmbedProductsCommandTest(TestCase):

    def setUp(self):
        _, self.store1 = create_store('t1@example.com', 'Toko Satu')
        _, self.store2 = create_store('t2@example.com', 'Toko Dua')

    def run_command(self, *args):
        out = StringIO()
        call_command('embed_products', *args, stdout=out)
        return out.getvalue()

    def test_embeds_one_store(self, service_cls):
        service_cls.return_value.embed.return_value = axis_vector(1.0)
        mine = create_product(self.store1, 'Kerupuk Pedas')
        theirs = create_product(self.store2, 'Teh Botol')

        output = self.run_command('--business', self.store1.slug)

        self.assertIn('Embedded 1 products, 0 failed', output)
        self.assertTrue(Product.objects.get(pk=mine.pk).has_embedding)
        self.assertFalse(Product.objects.get(pk=theirs.pk).has_embedding)

    def test_missing_only_skips_embedded_products(self, service_cls):
        service_cls.return_value.embed.return_value = axis_vector(0.0, 1.0)
        create_product(self.store1, 'Kerupuk Pedas', embedding=axis_vector(1.0))
        create_product(self.store1, 'Teh Botol')

        output = self.run_command('--missing-only')

        self.assertIn('Found 1 products', output)
        self.assertEqual(service_cls.return_value.embed.call_count, 1)

    def test_failures_are_counted(self, service_cls):
        service_cls.return_value.embed.side_effect = EmbeddingUnavailableError('Request timed out.')
        create_product(self.store1, 'Kerupuk Pedas')

        output = self.run_command()

        self.assertIn('Embedded 0 products, 1 failed', output)

    def test_unknown_store(self, service_cls):
        with self.assertRaises(CommandError):
            self.run_command('--business', 'no-such-store')

from unittest import skipUnless
from unittest.mock import Mock, patch

from django.db import DatabaseError, connection
from django.db.models import Value
from django.test import TestCase

from ai_features.exceptions import ConversationAccessDenied, ConversationPersistenceError
from ai_features.models import ChatMessage
from ai_features.services import (
    ChatOrchestrator,
    ContextTier,
    ConversationService,
    OpenAIService,
    OpenAIServiceError,
)
from inventory.models import Product
from tests.utils import axis_vector, create_product, create_store


def fake_stream(*chunks, error=None):
    """Stand-in for OpenAIService.stream_chat_completion"""
    def _stream(messages, **kwargs):
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error
    return _stream


class ChatOrchestratorTest(TestCase):

    def setUp(self):
        _, self.business = create_store('owner@tokosatu.com', 'Toko Satu')
        self.openai = Mock(spec=OpenAIService)
        self.openai.create_embedding.return_value = axis_vector(1.0)
        self.openai.stream_chat_completion.side_effect = fake_stream('Ada, ', 'stok 5.')
        self.orchestrator = ChatOrchestrator(self.business, openai_service=self.openai)

    def run_turn(self, text, chat_id=None):
        prepared = self.orchestrator.prepare_turn(text, chat_id=chat_id)
        return prepared, list(self.orchestrator.stream(prepared))

    def messages(self):
        return list(ChatMessage.objects.order_by('created_at', 'id').values_list('role', 'content'))

    def test_grounded_turn_streams_and_persists(self):
        create_product(self.business, 'Kerupuk Pedas', embedding=axis_vector(1.0), price=12000, stock=5)

        prepared, events = self.run_turn('kerupuk pedas')

        self.assertEqual([e['type'] for e in events], ['start', 'text-delta', 'text-delta', 'finish'])
        self.assertEqual(events[0]['grounding'], 'grounded')
        self.assertEqual(''.join(e['delta'] for e in events if e['type'] == 'text-delta'), 'Ada, stok 5.')
        self.assertEqual(self.messages(), [('user', 'kerupuk pedas'), ('assistant', 'Ada, stok 5.')])
        self.assertEqual(events[-1]['message_id'], ChatMessage.objects.get(role='assistant').id)
        self.assertIn('Kerupuk Pedas', prepared.model_messages[0]['content'])

    def test_model_receives_system_history_and_new_turn(self):
        conversation = ConversationService(self.business)
        session = conversation.get_or_create_session()
        conversation.append_message(session, 'user', 'Halo')
        conversation.append_message(session, 'assistant', 'Halo juga!')

        prepared, _ = self.run_turn('Ada kerupuk?')

        sent = self.openai.stream_chat_completion.call_args.args[0]
        self.assertEqual(sent, prepared.model_messages)
        self.assertEqual(sent[0]['role'], 'system')
        self.assertEqual(sent[1:], [
            {'role': 'user', 'content': 'Halo'},
            {'role': 'assistant', 'content': 'Halo juga!'},
            {'role': 'user', 'content': 'Ada kerupuk?'},
        ])

    def test_user_message_is_saved_before_generation(self):
        prepared = self.orchestrator.prepare_turn('Ada kerupuk?')

        self.openai.stream_chat_completion.assert_not_called()
        self.assertEqual(self.messages(), [('user', 'Ada kerupuk?')])
        self.assertEqual(prepared.user_message.content, 'Ada kerupuk?')

    def test_abort_mid_stream_discards_assistant_reply(self):
        prepared = self.orchestrator.prepare_turn('Ada kerupuk?')
        events = self.orchestrator.stream(prepared)

        self.assertEqual(next(events)['type'], 'start')
        self.assertEqual(next(events)['type'], 'text-delta')
        events.close()

        self.assertEqual(self.messages(), [('user', 'Ada kerupuk?')])

    def test_generation_failure_reports_error_and_keeps_user_message(self):
        self.openai.stream_chat_completion.side_effect = fake_stream(
            'Ada', error=OpenAIServiceError('OpenAI stream interrupted: connection reset')
        )

        _, events = self.run_turn('Ada kerupuk?')

        self.assertEqual(events[-1]['type'], 'error')
        self.assertEqual(events[-1]['error'], 'generation_error')
        self.assertEqual(self.messages(), [('user', 'Ada kerupuk?')])

    def test_empty_answer_is_not_persisted(self):
        self.openai.stream_chat_completion.side_effect = fake_stream()

        _, events = self.run_turn('Ada kerupuk?')

        self.assertEqual(events[-1]['error'], 'empty_response')
        self.assertEqual(ChatMessage.objects.filter(role='assistant').count(), 0)

    def test_assistant_persistence_failure_is_reported(self):
        prepared = self.orchestrator.prepare_turn('Ada kerupuk?')

        with patch.object(
            self.orchestrator.conversation, 'append_message',
            side_effect=ConversationPersistenceError('disk full')
        ):
            events = list(self.orchestrator.stream(prepared))

        self.assertEqual(events[-1]['type'], 'error')
        self.assertEqual(events[-1]['error'], 'persistence_error')
        self.assertNotIn('finish', [e['type'] for e in events])

    def test_embedding_timeout_still_answers_ungrounded(self):
        create_product(self.business, 'Kerupuk Pedas', embedding=axis_vector(1.0))
        self.openai.create_embedding.side_effect = OpenAIServiceError('Request timed out.')

        prepared, events = self.run_turn('kerupuk pedas')

        self.assertIs(prepared.context.tier, ContextTier.UNGROUNDED)
        self.assertEqual(events[-1]['type'], 'finish')
        self.assertEqual(self.messages()[-1], ('assistant', 'Ada, stok 5.'))

    def test_blank_text_reports_error_without_model_call(self):
        create_product(self.business, 'Kerupuk Pedas', embedding=axis_vector(1.0))

        prepared, events = self.run_turn('   ')

        self.openai.create_embedding.assert_not_called()
        self.openai.stream_chat_completion.assert_not_called()
        self.assertIs(prepared.context.tier, ContextTier.UNGROUNDED)
        self.assertIsNone(prepared.user_message)
        self.assertEqual([e['type'] for e in events], ['start', 'error'])
        self.assertEqual(events[-1]['error'], 'invalid_message')
        self.assertFalse(ChatMessage.objects.exists())

    def test_retrieval_database_error_answers_ungrounded(self):
        create_product(self.business, 'Kerupuk Pedas', embedding=axis_vector(1.0))

        with patch.object(self.orchestrator.retriever, 'retrieve', side_effect=DatabaseError('statement timeout')):
            prepared, events = self.run_turn('kerupuk pedas')

        self.assertIs(prepared.context.tier, ContextTier.UNGROUNDED)
        self.assertEqual(events[-1]['type'], 'finish')

    @skipUnless(connection.vendor == 'sqlite', 'stores text the vector column type would reject')
    def test_corrupt_stored_vector_does_not_break_the_turn(self):
        broken = create_product(self.business, 'Broken')
        Product.objects.filter(pk=broken.pk).update(embedding=Value('[' + ','.join(['x'] * 768) + ']'))
        create_product(self.business, 'Kerupuk Pedas', embedding=axis_vector(1.0))

        context = self.orchestrator.build_context('kerupuk')

        self.assertIs(context.tier, ContextTier.GROUNDED)
        self.assertEqual([p.name for p in context.products], ['Kerupuk Pedas'])

    def test_catalog_without_embeddings_uses_ungrounded_tier(self):
        create_product(self.business, 'Kerupuk Pedas')
        create_product(self.business, 'Teh Botol')

        prepared, _ = self.run_turn('kerupuk pedas')

        self.assertEqual(prepared.context.products, [])
        self.assertIs(prepared.context.tier, ContextTier.UNGROUNDED)

    def test_empty_catalog_uses_no_catalog_tier_without_embedding(self):
        prepared, _ = self.run_turn('kerupuk pedas')

        self.assertIs(prepared.context.tier, ContextTier.NO_CATALOG)
        self.openai.create_embedding.assert_not_called()

    def test_foreign_chat_id_is_denied_before_any_model_call(self):
        _, other = create_store('owner@tokodua.com', 'Toko Dua')
        foreign = ConversationService(other).get_or_create_session()

        with self.assertRaises(ConversationAccessDenied):
            self.orchestrator.prepare_turn('Ada kerupuk?', chat_id=foreign.id)

        self.openai.create_embedding.assert_not_called()
        self.openai.stream_chat_completion.assert_not_called()
        self.assertFalse(ChatMessage.objects.exists())

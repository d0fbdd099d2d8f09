from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase

from ai_features.services import OpenAIService, OpenAIServiceError


def chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    """Iterable stand-in for the SDK's Stream object"""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    def __iter__(self):
        yield from self.chunks
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


@patch('ai_features.services.openai_service.OpenAI')
class OpenAIServiceTest(SimpleTestCase):

    def make_service(self):
        return OpenAIService(api_key='sk-test', base_url=None)

    def test_missing_key_fails_only_when_called(self, openai_cls):
        service = OpenAIService(api_key='')

        with self.assertRaises(OpenAIServiceError):
            service.create_embedding('kerupuk')
        openai_cls.assert_not_called()

    def test_create_embedding_requests_configured_width_and_timeout(self, openai_cls):
        client = openai_cls.return_value
        scoped = client.with_options.return_value
        scoped.embeddings.create.return_value = SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2])])

        vector = self.make_service().create_embedding('kerupuk pedas', timeout=5)

        self.assertEqual(vector, [0.1, 0.2])
        client.with_options.assert_called_once_with(timeout=5)
        kwargs = scoped.embeddings.create.call_args.kwargs
        self.assertEqual(kwargs['input'], 'kerupuk pedas')
        self.assertEqual(kwargs['dimensions'], 768)

    def test_sdk_failure_becomes_service_error(self, openai_cls):
        scoped = openai_cls.return_value.with_options.return_value
        scoped.embeddings.create.side_effect = TimeoutError('Request timed out.')

        with self.assertRaises(OpenAIServiceError):
            self.make_service().create_embedding('kerupuk')

    def test_stream_yields_non_empty_deltas_and_closes(self, openai_cls):
        stream = FakeStream([chunk('Ada'), chunk(None), SimpleNamespace(choices=[]), chunk(', stok 5.')])
        scoped = openai_cls.return_value.with_options.return_value
        scoped.chat.completions.create.return_value = stream

        deltas = list(self.make_service().stream_chat_completion([{'role': 'user', 'content': 'hi'}]))

        self.assertEqual(deltas, ['Ada', ', stok 5.'])
        self.assertTrue(stream.closed)
        self.assertTrue(scoped.chat.completions.create.call_args.kwargs['stream'])

    def test_interrupted_stream_raises_service_error(self, openai_cls):
        stream = FakeStream([chunk('Ada')], error=ConnectionResetError('reset by peer'))
        openai_cls.return_value.with_options.return_value.chat.completions.create.return_value = stream

        deltas = self.make_service().stream_chat_completion([{'role': 'user', 'content': 'hi'}])

        self.assertEqual(next(deltas), 'Ada')
        with self.assertRaises(OpenAIServiceError):
            next(deltas)
        self.assertTrue(stream.closed)

    def test_closing_consumer_closes_upstream(self, openai_cls):
        stream = FakeStream([chunk('Ada'), chunk(' lagi')])
        openai_cls.return_value.with_options.return_value.chat.completions.create.return_value = stream

        deltas = self.make_service().stream_chat_completion([{'role': 'user', 'content': 'hi'}])
        next(deltas)
        deltas.close()

        self.assertTrue(stream.closed)

    def test_request_failure_raises_before_streaming(self, openai_cls):
        scoped = openai_cls.return_value.with_options.return_value
        scoped.chat.completions.create.side_effect = RuntimeError('401 invalid api key')

        deltas = self.make_service().stream_chat_completion([{'role': 'user', 'content': 'hi'}])

        with self.assertRaises(OpenAIServiceError):
            next(deltas)

    def test_client_is_built_once(self, openai_cls):
        service = self.make_service()
        openai_cls.return_value.with_options.return_value = MagicMock()

        service.client
        service.client

        openai_cls.assert_called_once_with(api_key='sk-test', base_url=None, max_retries=1)

"""
Server-sent event framing for assistant streams.

Each event is one ``data: <json>`` line followed by a blank line. The JSON
object always carries a ``type``: start, text-delta, finish or error.
"""

import json
from contextlib import closing
from typing import Any, Dict, Generator, Iterable, Iterator

EVENT_START = 'start'
EVENT_TEXT_DELTA = 'text-delta'
EVENT_FINISH = 'finish'
EVENT_ERROR = 'error'


def make_event(event_type: str, **payload: Any) -> Dict[str, Any]:
    return {'type': event_type, **payload}


def encode_event(event: Dict[str, Any]) -> bytes:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n".encode('utf-8')


def encode_events(events: Generator[Dict[str, Any], None, None]) -> Iterator[bytes]:
    """Encode a generator of events; closing the output closes the source."""
    with closing(events):
        for event in events:
            yield encode_event(event)


def decode_events(chunks: Iterable[bytes]) -> Iterator[Dict[str, Any]]:
    """Parse a byte stream produced by encode_events back into event dicts"""
    buffer = ''
    for chunk in chunks:
        buffer += chunk.decode('utf-8') if isinstance(chunk, bytes) else chunk
        while '\n\n' in buffer:
            frame, buffer = buffer.split('\n\n', 1)
            for line in frame.splitlines():
                if line.startswith('data: '):
                    yield json.loads(line[len('data: '):])

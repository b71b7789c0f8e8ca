from __future__ import annotations

from collections import deque
from typing import AsyncIterable, AsyncIterator, Optional

from python_multipart.exceptions import FormParserError
from python_multipart.multipart import MultipartParser, parse_options_header

from .errors import MalformedUpload
from .uploads import UploadPart


class MultipartStream:
    """Splits a ``multipart/form-data`` body into upload parts as it arrives.

    Each file part is handed out with a chunk iterator reading straight from
    the request body, so nothing is spooled to disk first. Parts must be
    consumed in order; whatever a consumer leaves unread is skipped before the
    next part is produced. Fields without a ``filename`` are ignored.
    """

    def __init__(self, content_type: str, body: AsyncIterable[bytes]):
        _, params = parse_options_header(content_type)
        boundary = params.get(b'boundary')
        if not boundary:
            raise MalformedUpload('Missing multipart boundary')

        self._source = body.__aiter__()
        self._events: deque[tuple[str, object]] = deque()
        self._exhausted = False
        self._part_open = False
        self._headers: dict[bytes, bytes] = {}
        self._field = bytearray()
        self._value = bytearray()
        self._parser = MultipartParser(
            boundary,
            callbacks={
                'on_part_begin': self._on_part_begin,
                'on_header_field': lambda data, start, end: self._field.extend(data[start:end]),
                'on_header_value': lambda data, start, end: self._value.extend(data[start:end]),
                'on_header_end': self._on_header_end,
                'on_headers_finished': lambda: self._events.append(('headers', dict(self._headers))),
                'on_part_data': lambda data, start, end: self._events.append(('data', bytes(data[start:end]))),
                'on_part_end': lambda: self._events.append(('end', None)),
            },
        )

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_end(self) -> None:
        self._headers[bytes(self._field).lower()] = bytes(self._value)
        self._field.clear()
        self._value.clear()

    async def _next_event(self) -> Optional[tuple[str, object]]:
        while not self._events:
            if self._exhausted:
                return None
            try:
                chunk = await self._source.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                chunk = None
            try:
                if chunk is None:
                    self._parser.finalize()
                elif chunk:
                    self._parser.write(chunk)
            except FormParserError as exc:
                raise MalformedUpload(f'Malformed multipart body: {exc}') from exc
        return self._events.popleft()

    async def _part_data(self) -> AsyncIterator[bytes]:
        while self._part_open:
            event = await self._next_event()
            if event is None:
                self._part_open = False
                raise MalformedUpload('Multipart body ended inside a part')
            kind, value = event
            if kind == 'data':
                yield value
            elif kind == 'end':
                self._part_open = False

    async def _skip_part(self) -> None:
        async for _ in self._part_data():
            pass

    async def parts(self) -> AsyncIterator[UploadPart]:
        while True:
            event = await self._next_event()
            if event is None:
                return
            kind, headers = event
            if kind != 'headers':
                continue

            self._part_open = True
            _, options = parse_options_header(headers.get(b'content-disposition', b''))
            if b'filename' in options:
                filename = options[b'filename'].decode('utf-8', errors='replace')
                yield UploadPart(filename, self._part_data())
            await self._skip_part()

from __future__ import annotations

import pytest

from filebrowse.services.errors import ErrorKind, MalformedUpload
from filebrowse.services.multipart import MultipartStream
from filebrowse.services.paths import ServerRoot
from filebrowse.services.uploads import UploadIngester

BOUNDARY = 'xYzBoundary'
CONTENT_TYPE = f'multipart/form-data; boundary={BOUNDARY}'


def _body(*parts: tuple[str, str | None, bytes]) -> bytes:
    out = b''
    for field, filename, data in parts:
        disposition = f'form-data; name="{field}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        out += (
            f'--{BOUNDARY}\r\n'
            f'Content-Disposition: {disposition}\r\n'
            'Content-Type: application/octet-stream\r\n\r\n'
        ).encode() + data + b'\r\n'
    return out + f'--{BOUNDARY}--\r\n'.encode()


async def _stream(body: bytes, size: int):
    for offset in range(0, len(body), size):
        yield body[offset:offset + size]


@pytest.fixture
def root(tmp_path):
    base = tmp_path / 'data'
    base.mkdir()
    return ServerRoot.from_config(str(base))


@pytest.mark.asyncio
@pytest.mark.parametrize('feed_size', [1, 7, 4096])
async def test_parts_stream_into_files_for_any_feed_size(root, feed_size):
    payload = bytes(range(256)) * 40
    body = _body(('files', 'one.bin', payload), ('files', 'two.txt', b'second'))

    parts = MultipartStream(CONTENT_TYPE, _stream(body, feed_size)).parts()
    report = await UploadIngester(root).ingest('', parts)

    assert [o.file_name for o in report.outcomes] == ['one.bin', 'two.txt']
    assert report.succeeded == 2
    assert (root.path / 'one.bin').read_bytes() == payload
    assert (root.path / 'two.txt').read_bytes() == b'second'


@pytest.mark.asyncio
async def test_plain_fields_are_skipped(root):
    body = _body(('note', None, b'just text'), ('files', 'kept.txt', b'kept'))

    report = await UploadIngester(root).ingest('', MultipartStream(CONTENT_TYPE, _stream(body, 5)).parts())

    assert [o.file_name for o in report.outcomes] == ['kept.txt']
    assert (root.path / 'kept.txt').read_bytes() == b'kept'


@pytest.mark.asyncio
async def test_rejected_part_is_skipped_without_breaking_the_next(root):
    body = _body(('files', '', b'nameless'), ('files', 'dir/../x', b'bad'), ('files', 'ok.txt', b'fine'))

    report = await UploadIngester(root).ingest('', MultipartStream(CONTENT_TYPE, _stream(body, 3)).parts())

    assert [o.error for o in report.outcomes] == [ErrorKind.MISSING_FILE_NAME, ErrorKind.INVALID_NAME, None]
    assert (root.path / 'ok.txt').read_bytes() == b'fine'
    assert sorted(p.name for p in root.path.iterdir()) == ['ok.txt']


@pytest.mark.asyncio
async def test_truncated_body_is_malformed(root):
    body = _body(('files', 'cut.bin', b'x' * 100))[:-40]

    with pytest.raises(MalformedUpload):
        await UploadIngester(root).ingest('', MultipartStream(CONTENT_TYPE, _stream(body, 16)).parts())


def test_missing_boundary_is_malformed():
    with pytest.raises(MalformedUpload):
        MultipartStream('multipart/form-data', _stream(b'', 1))

from __future__ import annotations

import asyncio

import pytest

from filebrowse import main
from filebrowse.config import Settings
from filebrowse.services.file_ops import FileOps
from filebrowse.services.uploads import UploadIngester


def _run_lifespan_startup(app):
    """Execute lifespan startup logic synchronously for testing."""
    gen = main.lifespan(app)
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(gen.__aenter__())
        loop.run_until_complete(gen.__aexit__(None, None, None))
    finally:
        loop.close()


def test_startup_rejects_missing_root(tmp_path):
    app = main.create_app(Settings(root_dir=str(tmp_path / 'missing'), _env_file=None))

    with pytest.raises(RuntimeError, match='root-dir'):
        _run_lifespan_startup(app)

    assert not hasattr(app.state, 'file_ops')


def test_startup_rejects_file_as_root(tmp_path):
    not_a_dir = tmp_path / 'file.txt'
    not_a_dir.write_text('x')
    app = main.create_app(Settings(root_dir=str(not_a_dir), _env_file=None))

    with pytest.raises(RuntimeError, match='root-dir'):
        _run_lifespan_startup(app)


def test_startup_wires_services_from_settings(tmp_path):
    config = Settings(
        root_dir=str(tmp_path),
        upload_chunk_size=8192,
        atomic_uploads=True,
        probe_command='mediainfo',
        probe_args=['--Output=JSON'],
        command_timeout_sec=7,
        _env_file=None,
    )
    app = main.create_app(config)

    _run_lifespan_startup(app)

    assert app.state.server_root.path == tmp_path.resolve()
    assert isinstance(app.state.file_ops, FileOps)
    ingester = app.state.ingester
    assert isinstance(ingester, UploadIngester)
    assert ingester.chunk_size == 8192
    assert ingester.atomic is True
    assert app.state.probe.build_cmd(tmp_path / 'a.mkv') == ['mediainfo', '--Output=JSON', str(tmp_path / 'a.mkv')]
    assert app.state.probe.runner.default_timeout == 7


def test_settings_bound_chunk_size():
    with pytest.raises(ValueError):
        Settings(upload_chunk_size=16, _env_file=None)

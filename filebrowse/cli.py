"""Command-line entry point: ``filebrowse --root-dir /srv/data``."""
from __future__ import annotations

import logging
from argparse import ArgumentParser

import uvicorn

from .config import settings
from .main import create_app


def define_options(progname: str = 'filebrowse') -> ArgumentParser:
    parser = ArgumentParser(progname, description='Serve a directory tree over HTTP for browsing and management')
    parser.add_argument('-l', '--log', dest='log_level', metavar='LEVEL', default=settings.log_level,
                        help='set the log level (default: %(default)s)')
    parser.add_argument('-a', '--addr', dest='app_host', metavar='ADDR', default=settings.app_host,
                        help='set the listen address (default: %(default)s)')
    parser.add_argument('-p', '--port', dest='app_port', type=int, metavar='PORT', default=settings.app_port,
                        help='set the listen port (default: %(default)s)')
    parser.add_argument('--root-dir', dest='root_dir', metavar='DIR', default=settings.root_dir,
                        help='the root directory of the file server (default: %(default)s)')
    return parser


def main(argv: list[str] | None = None) -> None:
    opts = define_options().parse_args(argv)
    config = settings.model_copy(update=vars(opts))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    logging.getLogger(__name__).info('listening on %s:%d', config.app_host, config.app_port)

    uvicorn.run(create_app(config), host=config.app_host, port=config.app_port, log_level=config.log_level.lower())


if __name__ == '__main__':
    main()

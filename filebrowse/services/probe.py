from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .errors import ProbeUnavailable
from .system_cmd import CommandRunner, RealCommandRunner, shell_preview

logger = logging.getLogger(__name__)

DEFAULT_PROBE_ARGS = ('-v', 'quiet', '-print_format', 'json', '-show_format', '-show_streams')


class MediaProbe:
    """Runs an external inspection tool (ffprobe by default) against a file.

    The tool's standard output is returned untouched. Any failure, including a
    missing executable, surfaces as :class:`ProbeUnavailable`.
    """

    def __init__(
        self,
        command: str = 'ffprobe',
        args: Sequence[str] = DEFAULT_PROBE_ARGS,
        runner: CommandRunner | None = None,
        timeout: int | None = None,
    ):
        self.command = command
        self.args = tuple(args)
        self.runner = runner or RealCommandRunner()
        self.timeout = timeout

    def build_cmd(self, target: Path) -> list[str]:
        return [self.command, *self.args, str(target)]

    async def probe(self, target: Path) -> str:
        if not target.is_file():
            raise ProbeUnavailable('Probe is only available for regular files')

        cmd = self.build_cmd(target)
        result = await self.runner.run(cmd, timeout=self.timeout)
        if not result.success:
            logger.warning('Probe failed (exit %s): %s: %s', result.exit_code, shell_preview(cmd), result.stderr)
            raise ProbeUnavailable('Media probe unavailable')
        return result.stdout

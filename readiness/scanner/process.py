"""
Module providing a helper for running external commands from coroutines.
"""

import asyncio
import logging
from collections import namedtuple


logger = logging.getLogger(__name__)


class CommandResult(namedtuple('CommandResult', ['returncode', 'stdout', 'stderr', 'timed_out'])):
    """
    Class representing the outcome of an external command.

    Attributes:
      returncode: The exit status of the command.
      stdout: The decoded standard output.
      stderr: The decoded standard error.
      timed_out: Whether the command was killed because it exceeded the timeout.
    """
    @property
    def success(self):
        return self.returncode == 0 and not self.timed_out

    @property
    def error_output(self):
        """
        The most useful description of a failure, taken from stderr or stdout.
        """
        if self.timed_out:
            return 'command timed out'
        output = self.stderr.strip() or self.stdout.strip()
        # Only the tail of the output is interesting
        return "\n".join(output.splitlines()[-20:]) or f'exited with status {self.returncode}'


async def run_command(*cmd, timeout = None):
    """
    Run the given command and return a ``CommandResult``.

    If the command does not complete within ``timeout`` seconds it is killed and the
    result is flagged as timed out. A missing executable raises ``FileNotFoundError``.
    """
    logger.debug(f"Running command: {' '.join(cmd)}")
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout = asyncio.subprocess.PIPE,
        stderr = asyncio.subprocess.PIPE
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout = timeout)
    except asyncio.TimeoutError:
        proc.kill()
        # Reap the killed process so that it does not linger
        await proc.wait()
        return CommandResult(proc.returncode, '', '', True)
    return CommandResult(
        proc.returncode,
        stdout.decode('utf-8', errors = 'replace'),
        stderr.decode('utf-8', errors = 'replace'),
        False
    )

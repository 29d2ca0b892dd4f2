"""
Command Runner Module.

Runs external command line tools (ImageMagick's ``convert``) and separates
"the tool is not installed" from "the tool ran and failed".
"""

import logging
import os
import shlex
import shutil
import subprocess
from typing import Iterable, Optional, Sequence

from attachery.core.errors import CommandFailedError, CommandNotFoundError

logger = logging.getLogger(__name__)


class CommandRunner:
    """
    Locates and runs external commands without a shell.
    """

    def __init__(
        self,
        command_path: Optional[str] = None,
        log_command: bool = False,
        swallow_stderr: bool = True,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            command_path: Directories (os.pathsep separated) searched before PATH.
            log_command: If True, every command line is logged at INFO level.
            swallow_stderr: If True, stderr is discarded instead of captured.
            timeout: Seconds before a command is abandoned.
        """
        self.command_path = command_path
        self.log_command = log_command
        self.swallow_stderr = swallow_stderr
        self.timeout = timeout

    def search_path(self) -> str:
        paths = [p for p in (self.command_path, os.environ.get("PATH", "")) if p]
        return os.pathsep.join(paths)

    def which(self, command: str) -> Optional[str]:
        return shutil.which(command, path=self.search_path())

    def run(
        self,
        command: str,
        arguments: Sequence[str] = (),
        expected_outcodes: Iterable[int] = (0,),
    ) -> str:
        """
        Runs ``command`` with ``arguments`` and returns its standard output.

        Args:
            command: Name of the executable.
            arguments: Arguments passed verbatim (no shell interpretation).
            expected_outcodes: Exit statuses treated as success.

        Returns:
            str: Decoded standard output.

        Raises:
            CommandNotFoundError: If the executable cannot be found.
            CommandFailedError: If it exits with an unexpected status or
                exceeds the timeout.
        """
        executable = self.which(command)
        if executable is None:
            raise CommandNotFoundError(f"Could not find the `{command}` command")

        cmdline = [executable, *[str(arg) for arg in arguments]]
        if self.log_command:
            logger.info(f"Running: {shlex.join(cmdline)}")

        try:
            completed = subprocess.run(
                cmdline,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL if self.swallow_stderr else subprocess.PIPE,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise CommandNotFoundError(f"Could not run the `{command}` command") from e
        except subprocess.TimeoutExpired as e:
            raise CommandFailedError(
                command, None, f"timed out after {self.timeout} seconds"
            ) from e

        if completed.returncode not in tuple(expected_outcodes):
            stderr = (completed.stderr or b"").decode("utf-8", errors="replace")
            raise CommandFailedError(command, completed.returncode, stderr.strip())

        return completed.stdout.decode("utf-8", errors="replace")

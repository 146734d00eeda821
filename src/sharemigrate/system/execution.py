# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/system/execution.py

"""Subprocess execution with captured output."""

import subprocess
from dataclasses import dataclass
from typing import Optional, Union

from loguru import logger


@dataclass
class CommandResult:
    """Outcome of a finished external command."""
    returncode: int
    stdout: Union[str, bytes]
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class CommandExecutor:
    """Run external commands and capture stdout, stderr and exit status."""

    @staticmethod
    def run_local(cmd: list[str], timeout: Optional[float] = None, check: bool = True,
                  env: Optional[dict[str, str]] = None, text: bool = True) -> CommandResult:
        """Run a command on this host.

        Args:
            cmd: Command and arguments
            timeout: Seconds before the process is killed (None waits forever)
            check: Raise ValueError on a non-zero exit status
            env: Full environment for the child process (None inherits ours)
            text: Decode stdout as text; with False stdout stays raw bytes
                and stderr is decoded leniently for messages

        Returns:
            CommandResult with the captured streams

        Raises:
            ValueError: If check is True and the command fails
            subprocess.TimeoutExpired: If the timeout elapses
        """
        kwargs = {"capture_output": True, "text": text, "timeout": timeout}
        if env is not None:
            kwargs["env"] = env

        proc = subprocess.run(cmd, **kwargs)
        stderr = proc.stderr if text else proc.stderr.decode("utf-8", errors="replace")
        result = CommandResult(returncode=proc.returncode, stdout=proc.stdout, stderr=stderr)
        logger.debug(f"CMD: {' '.join(cmd)} -> exit {result.returncode}")
        if result.stderr:
            logger.debug(f"CMD stderr: {result.stderr.strip()}")

        if check and not result.success:
            if result.stderr:
                raise ValueError(f"Local command failed: {result.stderr.strip()}")
            raise ValueError(f"Command failed with exit code {result.returncode}")
        return result

# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/storage/eos.py

"""
EOS storage backend client.

Every call shells out to the `eos` command line tool with `-r <uid> <gid>`
role impersonation:
- lookups run as the configured super-user (0/0 by default)
- version folder creation runs as the file's owner, so the new folder
  gets the same ownership as the file

Output is captured as bytes: EOS paths are not guaranteed to be UTF-8.
"""

import os
import subprocess

from loguru import logger

from sharemigrate.config.manager import BackendConfig
from sharemigrate.models import LookupResult
from sharemigrate.storage.metadata import parse_file_info
from sharemigrate.storage.protocols import StorageBackend
from sharemigrate.system.exceptions import BackendError
from sharemigrate.system.execution import CommandExecutor as ce

# `eos file info` exits with ENOENT when the inode/path does not exist
NOT_FOUND_EXIT_STATUS = 2


class EOSClient(StorageBackend):
    """StorageBackend implemented over the `eos` CLI."""

    def __init__(self, config: BackendConfig) -> None:
        self.config = config
        self._env = {**os.environ, "EOS_MGM_URL": config.mgm_url}

    def _command(self, uid: str, gid: str, *args: str) -> list[str]:
        return [self.config.binary, "-r", str(uid), str(gid), *args]

    def _run(self, cmd: list[str]):
        try:
            return ce.run_local(cmd, timeout=self.config.timeout, check=False, env=self._env, text=False)
        except subprocess.TimeoutExpired as e:
            raise BackendError(
                f"'{' '.join(cmd)}' timed out after {self.config.timeout}s",
                command=cmd, retry_possible=True
            ) from e
        except OSError as e:
            raise BackendError(f"cannot run {cmd[0]}: {e}", command=cmd) from e

    def _file_info(self, ref: str) -> LookupResult:
        cmd = self._command(
            self.config.superuser_uid, self.config.superuser_gid,
            "file", "info", ref, "-m"
        )
        result = self._run(cmd)
        if result.returncode == NOT_FOUND_EXIT_STATUS:
            logger.debug(f"{ref} not found on {self.config.mgm_url}")
            return LookupResult.not_found()
        if not result.success:
            raise BackendError(
                f"file info {ref} failed",
                command=cmd, exit_status=result.returncode, stderr=result.stderr
            )
        return LookupResult.found(parse_file_info(result.stdout))

    def lookup_by_inode(self, inode: int) -> LookupResult:
        return self._file_info(f"inode:{inode}")

    def lookup_by_path(self, path: str) -> LookupResult:
        return self._file_info(path)

    def create_version_folder(self, owner_uid: str, owner_gid: str, path: str) -> None:
        cmd = self._command(owner_uid, owner_gid, "file", "version", path)
        result = self._run(cmd)
        if not result.success:
            raise BackendError(
                f"file version {path} failed",
                command=cmd, exit_status=result.returncode, stderr=result.stderr
            )
        logger.debug(f"Requested version folder for {path} as {owner_uid}:{owner_gid}")

# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/storage/__init__.py

"""Storage backend access: the EOS command line client and its output parser."""

from sharemigrate.storage.eos import EOSClient, NOT_FOUND_EXIT_STATUS
from sharemigrate.storage.metadata import parse_file_info
from sharemigrate.storage.protocols import StorageBackend

__all__ = ["EOSClient", "NOT_FOUND_EXIT_STATUS", "parse_file_info", "StorageBackend"]

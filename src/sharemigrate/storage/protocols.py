# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/storage/protocols.py

"""Interface the reconciliation engine needs from a storage backend."""

from abc import ABC, abstractmethod

from sharemigrate.models import LookupResult


class StorageBackend(ABC):
    """Metadata lookups and version folder creation on the storage backend."""

    @abstractmethod
    def lookup_by_inode(self, inode: int) -> LookupResult:
        """Resolve metadata for an inode.

        Returns:
            LookupResult, NOT_FOUND when the backend has no such inode

        Raises:
            BackendError: On any other backend failure
            ParseError: If the backend output cannot be parsed
        """
        raise NotImplementedError("lookup_by_inode() not implemented")

    @abstractmethod
    def lookup_by_path(self, path: str) -> LookupResult:
        """Resolve metadata for a path. Same contract as lookup_by_inode()."""
        raise NotImplementedError("lookup_by_path() not implemented")

    @abstractmethod
    def create_version_folder(self, owner_uid: str, owner_gid: str, path: str) -> None:
        """Create the version folder of the file at path, impersonating its owner.

        Raises:
            BackendError: If the backend refuses
        """
        raise NotImplementedError("create_version_folder() not implemented")

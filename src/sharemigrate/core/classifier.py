# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/core/classifier.py

"""Decide where a share's file sits relative to the version folder convention."""

import posixpath
from enum import Enum

from sharemigrate.models import VERSIONS_PREFIX


class PathClassification(Enum):
    ALREADY_VERSION_POINTER = "already points to the version folder"
    OUTSIDE_MANAGED_TREE = "file not under home directory"
    POINTS_INTO_EXISTING_VERSION_FOLDER = "points to a version"
    NEEDS_VERSION_FOLDER = "needs version folder"


def _clean(path: str) -> str:
    return posixpath.normpath(path) if path else path


def classify(path: str, home_prefix: str) -> PathClassification:
    """Classify a resolved backend path. First matching rule wins."""
    clean = _clean(path)
    if posixpath.basename(clean).startswith(VERSIONS_PREFIX):
        return PathClassification.ALREADY_VERSION_POINTER
    if not path.startswith(home_prefix):
        return PathClassification.OUTSIDE_MANAGED_TREE
    if posixpath.basename(posixpath.dirname(clean)).startswith(VERSIONS_PREFIX):
        return PathClassification.POINTS_INTO_EXISTING_VERSION_FOLDER
    return PathClassification.NEEDS_VERSION_FOLDER


def version_folder_path(path: str) -> str:
    """Sibling version folder of a file: <dir>/.sys.v#.<name>."""
    clean = _clean(path)
    return posixpath.join(posixpath.dirname(clean), VERSIONS_PREFIX + posixpath.basename(clean))


def parent_folder_path(path: str) -> str:
    return posixpath.dirname(_clean(path))

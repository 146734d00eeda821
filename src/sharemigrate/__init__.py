# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/__init__.py

"""Point public link shares at EOS version folders."""

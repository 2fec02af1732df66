# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
prlander CLI

Usage:
    prlander land OWNER/REPO --branch NAME --pr-context CI --source-dir DIR ...
    prlander wait-status OWNER/REPO SHA --context CI
"""

from .main import cli, main

__all__ = ['cli', 'main']

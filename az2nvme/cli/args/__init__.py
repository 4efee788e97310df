# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/cli/args/__init__.py
"""
Argument parsing for the az2nvme CLI.
"""
from __future__ import annotations

from .builder import HelpFormatter
from .helpers import _require, _resource_groups
from .parser import build_parser, parse_args_with_config
from .validators import validate_args

__all__ = [
    "HelpFormatter",
    "_require",
    "_resource_groups",
    "build_parser",
    "parse_args_with_config",
    "validate_args",
]

# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/orchestrator/__init__.py
"""
Command handlers and the top-level dispatcher.
"""

from .nvme_converter import NvmeConversionRunner
from .orchestrator import Orchestrator
from .rg_tagger import TagRunner

__all__ = [
    "NvmeConversionRunner",
    "Orchestrator",
    "TagRunner",
]

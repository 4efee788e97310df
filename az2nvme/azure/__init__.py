# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""Azure control-plane access, VM discovery, conversion and tagging."""

from __future__ import annotations

from .control import AzCliControlPlane
from .converter import BatchConverter, partition
from .discovery import TargetResolver
from .models import ConversionResult, RunConfig, TagConfig, VMDescriptor
from .tagging import ResourceGroupTagger

__all__ = [
    "AzCliControlPlane",
    "BatchConverter",
    "ConversionResult",
    "ResourceGroupTagger",
    "RunConfig",
    "TagConfig",
    "TargetResolver",
    "VMDescriptor",
    "partition",
]

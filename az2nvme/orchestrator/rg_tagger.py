# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/orchestrator/rg_tagger.py

from __future__ import annotations

import argparse
import logging
from typing import Any

from ..azure.control import AzCliControlPlane
from ..azure.models import TagConfig
from ..azure.report import print_tag_results
from ..azure.tagging import ResourceGroupTagger, parse_tag_pairs
from ..cli.args.helpers import _resource_groups, _str_or_none
from ..core.logger import Log


class TagRunner:
    """Runs one tag command."""

    def __init__(self, logger: logging.Logger, args: argparse.Namespace, *, control: Any = None):
        self.logger = logger
        self.args = args
        self.control = control if control is not None else AzCliControlPlane()

    def build_config(self) -> TagConfig:
        return TagConfig(
            resource_groups=_resource_groups(self.args),
            pattern=_str_or_none(getattr(self.args, "rg_pattern", None)),
            tags=parse_tag_pairs(list(getattr(self.args, "tags", None) or [])),
            preview=bool(getattr(self.args, "preview", False)),
        )

    def run(self) -> int:
        cfg = self.build_config()
        Log.banner(self.logger, "az2nvme tag")
        results = ResourceGroupTagger(self.control, self.logger).run(cfg)
        print_tag_results(results)

        failed = [r for r in results if not r.success]
        if failed:
            Log.fail(self.logger, f"{len(failed)} of {len(results)} resource group(s) failed")
            return 1
        return 0

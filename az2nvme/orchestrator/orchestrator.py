# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/orchestrator/orchestrator.py

from __future__ import annotations

import argparse
import logging
from typing import Any

from ..azure import cli as az
from ..cli.args.helpers import _str_or_none
from ..core.logger import Log
from .nvme_converter import NvmeConversionRunner
from .rg_tagger import TagRunner


class Orchestrator:
    """
    Dispatches the selected command after checking the Azure login.
    """

    def __init__(self, logger: logging.Logger, args: argparse.Namespace, *, control: Any = None, routine: Any = None):
        self.logger = logger
        self.args = args
        self.control = control
        self.routine = routine

        Log.trace(
            self.logger,
            "🧠 Orchestrator init: cmd=%r preview=%r",
            getattr(args, "cmd", None),
            getattr(args, "preview", False),
        )

    def _check_account(self) -> None:
        if getattr(self.args, "skip_login_check", False):
            return
        acct = az.validate_account(
            subscription=_str_or_none(getattr(self.args, "subscription", None)),
            tenant=_str_or_none(getattr(self.args, "tenant", None)),
        )
        self.logger.info("Azure subscription: %s (%s)", acct.get("name") or "?", acct.get("id") or "?")

    def run(self) -> int:
        cmd = getattr(self.args, "cmd", None) or "convert"
        self._check_account()

        if cmd == "tag":
            return TagRunner(self.logger, self.args, control=self.control).run()
        return NvmeConversionRunner(self.logger, self.args, control=self.control, routine=self.routine).run()

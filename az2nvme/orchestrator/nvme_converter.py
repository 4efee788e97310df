# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/orchestrator/nvme_converter.py
"""
Convert command handler: args -> RunConfig -> discovery -> batch conversion -> report.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Optional

from ..azure.control import AzCliControlPlane
from ..azure.converter import BatchConverter
from ..azure.discovery import TargetResolver
from ..azure.exceptions import wrap_script_error
from ..azure.models import DEFAULT_SCRIPT_URL, ConvertConfig, RunConfig, ScriptConfig, SelectConfig
from ..azure.report import print_report, write_report
from ..azure.script import PowerShellConversionRoutine, ensure_script
from ..cli.args.helpers import _resource_groups, _str_or_none
from ..core.logger import Log
from ..core.logging_utils import log_step
from ..core.utils import U


class NvmeConversionRunner:
    """
    Runs one convert command.

    control / routine may be injected; by default the 'az' CLI and the
    fetched PowerShell script are used.
    """

    def __init__(self, logger: logging.Logger, args: argparse.Namespace, *, control: Any = None, routine: Any = None):
        self.logger = logger
        self.args = args
        self.control = control if control is not None else AzCliControlPlane()
        self.routine = routine

    def build_config(self) -> RunConfig:
        a = self.args
        rgs = _resource_groups(a)
        script_path = _str_or_none(getattr(a, "script_path", None))
        return RunConfig(
            subscription=_str_or_none(getattr(a, "subscription", None)),
            tenant=_str_or_none(getattr(a, "tenant", None)),
            select=SelectConfig(
                resource_group=rgs[0] if rgs else "",
                vm_name=_str_or_none(getattr(a, "vm_name", None)),
                source_size=_str_or_none(getattr(a, "source_size", None)),
                ignore_running=bool(getattr(a, "ignore_running", False)),
            ),
            convert=ConvertConfig(
                dest_size=_str_or_none(getattr(a, "dest_size", None)) or "",
                controller_type=getattr(a, "controller_type", None) or "NVMe",
                group_size=int(getattr(a, "group_size", 3)),
                settle_s=float(getattr(a, "settle", 30.0)),
                preview=bool(getattr(a, "preview", False)),
            ),
            script=ScriptConfig(
                url=getattr(a, "script_url", None) or DEFAULT_SCRIPT_URL,
                path=Path(script_path) if script_path else None,
                cache_dir=Path(getattr(a, "script_cache_dir", None) or "./.az2nvme-cache"),
                sha256=_str_or_none(getattr(a, "script_sha256", None)),
                refresh=bool(getattr(a, "refresh_script", False)),
                shell=getattr(a, "pwsh", None) or "pwsh",
                start_vm=not bool(getattr(a, "no_start_vm", False)),
                fix_os_settings=not bool(getattr(a, "no_fix_os", False)),
                ignore_module_check=not bool(getattr(a, "azure_module_check", False)),
            ),
            output_dir=Path(getattr(a, "output_dir", None) or "./out"),
            run_tag=_str_or_none(getattr(a, "run_tag", None)),
        )

    def _routine(self, cfg: RunConfig) -> Any:
        if self.routine is not None:
            return self.routine
        if U.which(cfg.script.shell) is None:
            raise wrap_script_error(f"PowerShell not found: {cfg.script.shell}", shell=cfg.script.shell)
        path = ensure_script(cfg.script, self.logger)
        return PowerShellConversionRoutine(path, cfg.script, self.logger)

    def run(self) -> int:
        cfg = self.build_config()
        run_tag = cfg.run_tag or U.now_ts()
        Log.banner(self.logger, f"az2nvme convert ({run_tag})")

        with log_step(self.logger, f"Resolving target VMs in {cfg.select.resource_group}"):
            vms = TargetResolver(self.control, self.logger).resolve(cfg.select)

        # the script is only needed once tasks will actually run
        routine: Optional[Any] = None
        if not cfg.convert.preview and vms:
            routine = self._routine(cfg)

        converter = BatchConverter(
            self.control,
            routine,
            self.logger,
            dest_size=cfg.convert.dest_size,
            controller_type=cfg.convert.controller_type,
            group_size=cfg.convert.group_size,
            settle_s=cfg.convert.settle_s,
        )
        report = converter.run(vms, preview=cfg.convert.preview)

        print_report(report)
        if not getattr(self.args, "no_report", False):
            write_report(report, cfg, run_tag, self.logger)

        # VMs converted before the stop are on record; the run still fails with the error's code
        if report.fatal is not None:
            raise report.fatal
        if report.summary is None:
            return 0
        if not report.summary.ok:
            Log.fail(self.logger, f"{report.summary.failed} of {report.summary.total} VM(s) failed")
            return 1
        Log.ok(self.logger, f"All {report.summary.total} VM(s) converted")
        return 0

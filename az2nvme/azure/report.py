# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/report.py

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.exceptions import Az2NvmeError
from ..core.utils import U
from .models import BatchReport, RunConfig, TagResult


def summary_table(report: BatchReport) -> Table:
    table = Table(title="Conversion results", show_lines=False)
    table.add_column("Group", justify="right")
    table.add_column("VM")
    table.add_column("Result")
    table.add_column("Size")
    table.add_column("Controller")
    table.add_column("Duration", justify="right")
    table.add_column("Message", overflow="fold")

    for r in report.results or []:
        table.add_row(
            str(r.group_index),
            r.vm_name,
            "[green]ok[/green]" if r.success else "[red]failed[/red]",
            f"{r.original_size} -> {r.new_size}",
            r.controller_type or "-",
            U.human_duration(r.duration_s),
            r.error if (r.error and not r.success) else r.message,
        )
    return table


def plan_table(report: BatchReport) -> Table:
    table = Table(title="Preview: planned groups")
    table.add_column("Group", justify="right")
    table.add_column("VMs")
    for idx, group in enumerate(report.plan.groups, 1):
        table.add_row(str(idx), ", ".join(f"{vm.name} ({vm.size})" for vm in group))
    return table


def print_report(report: BatchReport, console: Optional[Console] = None) -> None:
    con = console or Console()
    if report.preview:
        con.print(plan_table(report))
        return

    summary = report.summary
    if summary is None:
        con.print("[yellow]No conversions ran[/yellow]")
        return

    con.print(summary_table(report))
    body = (
        f"total={summary.total}  succeeded={summary.succeeded}  failed={summary.failed}  "
        f"duration={U.human_duration(summary.duration_s)}"
    )
    if report.fatal is not None:
        body += f"\nstopped early: {escape(str(report.fatal))}"
    con.print(Panel(body, title="Summary", expand=False, border_style="green" if summary.ok else "red"))


def print_tag_results(results: List[TagResult], console: Optional[Console] = None) -> None:
    con = console or Console()
    table = Table(title="Resource group tags")
    table.add_column("Resource group")
    table.add_column("Status")
    table.add_column("Tags")
    for r in results:
        if r.error:
            status = "[red]failed[/red]"
        elif r.applied:
            status = "[green]updated[/green]"
        elif r.changed:
            status = "[yellow]would update[/yellow]"
        else:
            status = "unchanged"
        table.add_row(r.resource_group, status, ", ".join(f"{k}={v}" for k, v in sorted(r.after.items())))
    con.print(table)


def _fatal_jsonable(err: Optional[BaseException]) -> Optional[Dict[str, Any]]:
    if err is None:
        return None
    if isinstance(err, Az2NvmeError):
        return err.to_dict()
    return {"type": type(err).__name__, "message": str(err)}


def report_to_jsonable(report: BatchReport, cfg: RunConfig, run_tag: str) -> Dict[str, Any]:
    return {
        "run_tag": run_tag,
        "preview": report.preview,
        "selection": {
            "resource_group": cfg.select.resource_group,
            "vm_name": cfg.select.vm_name,
            "source_size": cfg.select.source_size,
            "ignore_running": cfg.select.ignore_running,
        },
        "conversion": {
            "dest_size": cfg.convert.dest_size,
            "controller_type": cfg.convert.controller_type,
            "group_size": cfg.convert.group_size,
        },
        "groups": report.plan.to_jsonable(),
        "summary": report.summary.to_jsonable() if report.summary is not None else None,
        "fatal": _fatal_jsonable(report.fatal),
    }


def write_report(report: BatchReport, cfg: RunConfig, run_tag: str, logger: logging.Logger) -> Path:
    """Write the run report as JSON under the output directory."""
    out = Path(cfg.output_dir) / f"az2nvme-run-{run_tag}.json"
    U.ensure_dir(out.parent)
    out.write_text(
        json.dumps(report_to_jsonable(report, cfg, run_tag), indent=2, sort_keys=True, default=str),
        encoding="utf-8",
    )
    logger.info("Run report written to %s", out)
    return out

# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/converter.py
"""
Grouped parallel disk-controller conversion.

VMs are split into consecutive groups of at most `group_size`. Each group runs
one task per VM on its own thread pool and is fully drained before the next
group starts, so at most `group_size` conversions are ever in flight.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from ..core.exceptions import wrap_config
from ..core.logger import Log
from . import cli
from .exceptions import AzureError, AzureNotFoundError
from .models import (
    BatchPlan,
    BatchReport,
    ConversionResult,
    ConversionTask,
    RunSummary,
    VMDescriptor,
    normalize_controller,
)

T = TypeVar("T")

# Power states the VM must leave before the OS settings can be fixed.
_START_FROM = ("deallocated", "stopped")

TaskFn = Callable[[ConversionTask], Optional[ConversionResult]]


def partition(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive chunks of at most `size` (last may be shorter)."""
    if size < 1:
        raise ValueError(f"group size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


class BatchConverter:
    """
    Converts VMs to a new disk controller type (and size) in bounded groups.

    control: object with describe_vm / power_state / start_vm (see AzCliControlPlane)
    routine: object with convert(resource_group=, vm_name=, controller_type=, vm_size=)
    task_fn: per-VM task; defaults to convert_one. May return None, in which case
             a fallback result is synthesized from the task's completion state.
    """

    def __init__(
        self,
        control: Any,
        routine: Any,
        logger: logging.Logger,
        *,
        dest_size: str,
        controller_type: str,
        group_size: int = 3,
        settle_s: float = 30.0,
        task_fn: Optional[TaskFn] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not (dest_size or "").strip():
            raise wrap_config("Destination VM size is required")
        if group_size < 1:
            raise wrap_config(f"Group size must be >= 1, got {group_size}", group_size=group_size)
        try:
            controller_type = normalize_controller(controller_type)
        except ValueError as e:
            raise wrap_config(str(e), e) from e

        self.control = control
        self.routine = routine
        self.logger = logger
        self.dest_size = dest_size.strip()
        self.controller_type = controller_type
        self.group_size = group_size
        self.settle_s = max(0.0, float(settle_s))
        self.task_fn: TaskFn = task_fn or self.convert_one
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, vms: Sequence[VMDescriptor]) -> BatchPlan:
        return BatchPlan(groups=partition(list(vms), self.group_size))

    def _log_plan(self, plan: BatchPlan) -> None:
        self.logger.info(
            "Plan: %d VM(s) in %d group(s) of <= %d -> %s / %s",
            plan.vm_count,
            len(plan.groups),
            self.group_size,
            self.controller_type,
            self.dest_size,
        )
        for idx, group in enumerate(plan.groups, 1):
            self.logger.info("  group %d: %s", idx, ", ".join(f"{vm.name} ({vm.size}, {vm.power_state})" for vm in group))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, vms: Sequence[VMDescriptor], *, preview: bool = False) -> BatchReport:
        plan = self.plan(vms)
        self._log_plan(plan)

        if preview:
            Log.ok(self.logger, "Preview mode: no conversions started")
            return BatchReport(plan=plan, preview=True)

        t0 = time.monotonic()
        results: List[ConversionResult] = []
        fatal: Optional[AzureNotFoundError] = None
        for idx, group in enumerate(plan.groups, 1):
            batch, fatal = self.run_group(idx, group)
            results = results + batch
            if fatal is not None:
                Log.fail(
                    self.logger,
                    f"Group {idx} hit a discovery error; {len(plan.groups) - idx} later group(s) not started: {fatal}",
                )
                break

        summary = RunSummary(results=results, duration_s=time.monotonic() - t0)
        self.logger.info(
            "Conversion finished: %d ok, %d failed, %.1fs",
            summary.succeeded,
            summary.failed,
            summary.duration_s,
        )
        return BatchReport(plan=plan, preview=False, summary=summary, fatal=fatal)

    def run_group(
        self, index: int, group: Sequence[VMDescriptor]
    ) -> Tuple[List[ConversionResult], Optional[AzureNotFoundError]]:
        """
        Run one task per VM in the group and wait for all of them.

        Results come back in completion order. A VM that disappeared (not
        found) gets a failure result and is returned as the group's fatal
        error once the group has drained; the caller starts no further groups.
        """
        Log.banner(self.logger, f"Group {index}: {len(group)} VM(s)")

        batch: List[ConversionResult] = []
        fatal: Optional[AzureNotFoundError] = None

        with ThreadPoolExecutor(max_workers=len(group), thread_name_prefix=f"az2nvme-g{index}") as ex:
            futs: Dict[Any, ConversionTask] = {}
            for vm in group:
                task = ConversionTask(
                    vm=vm,
                    dest_size=self.dest_size,
                    controller_type=self.controller_type,
                    group_index=index,
                    started_at=time.time(),
                )
                futs[ex.submit(self.task_fn, task)] = task

            for f in as_completed(futs):
                task = futs[f]
                exc = f.exception()
                if isinstance(exc, AzureNotFoundError):
                    fatal = fatal or exc
                    Log.fail(self.logger, f"VM not found: {exc}", vm=task.vm.name)
                    batch.append(self._result(task, False, task.vm.size, "VM not found", error=str(exc)))
                    continue
                if exc is not None:
                    batch.append(self.fallback_result(task, error=exc))
                    continue

                res = f.result()
                batch.append(res if res is not None else self.fallback_result(task))

        return batch, fatal

    # ------------------------------------------------------------------
    # Per-VM task
    # ------------------------------------------------------------------

    def convert_one(self, task: ConversionTask) -> Optional[ConversionResult]:
        vm = task.vm
        log = Log.bind(self.logger, vm=vm.name, group=task.group_index)

        started = False
        try:
            started = self._ensure_running(vm, log)
        except AzureNotFoundError:
            raise
        except AzureError as e:
            Log.fail(log, f"Could not start VM: {e}")
            return self._result(task, False, vm.size, "Failed to start VM", error=str(e))

        Log.step(log, f"Converting to {task.controller_type} / {task.dest_size}")
        try:
            self.routine.convert(
                resource_group=vm.resource_group,
                vm_name=vm.name,
                controller_type=task.controller_type,
                vm_size=task.dest_size,
            )
        except AzureNotFoundError:
            raise
        except Exception as e:
            # the routine is opaque; any failure belongs to this VM only
            Log.fail(log, f"Conversion routine failed: {e}")
            return self._result(task, False, vm.size, "Conversion routine failed", error=str(e), started_vm=started)

        if self.settle_s:
            log.debug("Settling for %.0fs before validation", self.settle_s)
            self._sleep(self.settle_s)

        return self.validate(task, started_vm=started, logger=log)

    def _ensure_running(self, vm: VMDescriptor, log: Any) -> bool:
        """Start the VM when it is deallocated/stopped. Returns True if we started it."""
        state = vm.power_state
        if not state or state == "unknown":
            state = self.control.power_state(vm.resource_group, vm.name)
        if state in _START_FROM:
            Log.step(log, f"VM is {state}; starting it")
            self.control.start_vm(vm.resource_group, vm.name)
            return True
        return False

    def validate(self, task: ConversionTask, *, started_vm: bool = False, logger: Any = None) -> ConversionResult:
        """
        Re-read the VM once and judge the conversion.

        Success when the size matches the destination OR the controller matches
        the request. The controller is the primary signal: a resize may be
        refused while the controller conversion still went through.
        """
        vm = task.vm
        log = logger or self.logger
        try:
            after = self.control.describe_vm(vm.resource_group, vm.name)
        except AzureError as e:
            Log.fail(log, f"Validation read failed: {e}")
            return self._result(task, False, vm.size, "Validation failed: could not re-read VM", error=str(e), started_vm=started_vm)

        new_size = cli.vm_size(after)
        new_ctrl = cli.vm_controller_type(after)
        size_ok = _same(new_size, task.dest_size)
        ctrl_ok = _same(new_ctrl, task.controller_type)

        if ctrl_ok and size_ok:
            msg = f"Converted to {new_ctrl} on {new_size}"
        elif ctrl_ok:
            msg = f"Controller successfully converted to {new_ctrl}; size is {new_size} (wanted {task.dest_size}), size validation secondary"
        elif size_ok:
            msg = f"Size is {new_size}; controller is {new_ctrl} (wanted {task.controller_type})"
        else:
            msg = f"Validation failed: size {new_size}, controller {new_ctrl}"

        success = size_ok or ctrl_ok
        if success:
            Log.ok(log, msg)
        else:
            Log.fail(log, msg)
        return self._result(
            task,
            success,
            new_size,
            msg,
            error=None if success else msg,
            controller_type=new_ctrl,
            started_vm=started_vm,
        )

    def fallback_result(self, task: ConversionTask, error: Optional[BaseException] = None) -> ConversionResult:
        """
        Result for a task that produced no structured result.

        Completion state stands in for success: a task that returned normally
        counts as converted, one that raised counts as failed.
        """
        if error is None:
            Log.warn(self.logger, "Task completed without a structured result", vm=task.vm.name)
            return self._result(task, True, "unknown", "Task completed without a structured result")
        Log.fail(self.logger, f"Task failed: {error}", vm=task.vm.name)
        return self._result(task, False, task.vm.size, "Task failed", error=f"{type(error).__name__}: {error}")

    def _result(
        self,
        task: ConversionTask,
        success: bool,
        new_size: str,
        message: str,
        *,
        error: Optional[str] = None,
        controller_type: Optional[str] = None,
        started_vm: bool = False,
    ) -> ConversionResult:
        return ConversionResult(
            success=success,
            vm_name=task.vm.name,
            original_size=task.vm.size,
            new_size=new_size,
            duration_s=max(0.0, time.time() - task.started_at),
            message=message,
            error=error,
            group_index=task.group_index,
            controller_type=controller_type,
            started_vm=started_vm,
        )

# SPDX-License-Identifier: LGPL-3.0-or-later
"""
Unit tests for grouped parallel conversion.
"""
import math
import time

import pytest

from az2nvme.azure.converter import BatchConverter, partition
from az2nvme.azure.exceptions import AzureCLIError, AzureNotFoundError, ConversionScriptError
from az2nvme.azure.models import ConversionResult, ConversionTask, VMDescriptor
from az2nvme.core.exceptions import ConfigError
from fakes.fake_azure import FakeControlPlane, FakeRoutine

RG = "rg-sap-test"
SRC = "Standard_E4s_v3"
DEST = "Standard_E4bds_v5"


def _fleet(n, *, power="deallocated"):
    control = FakeControlPlane()
    control.add_group(RG)
    vms = []
    for i in range(n):
        name = f"vm{i + 1}"
        control.add_vm(name, RG, SRC, power=power)
        vms.append(VMDescriptor(name=name, resource_group=RG, size=SRC, power_state=power, controller_type="SCSI"))
    return control, vms


def _task(vm, dest, ctrl="NVMe"):
    return ConversionTask(vm=vm, dest_size=dest, controller_type=ctrl, group_index=1, started_at=time.time())


def _converter(control, routine, logger, **kw):
    kw.setdefault("dest_size", DEST)
    kw.setdefault("controller_type", "NVMe")
    kw.setdefault("group_size", 3)
    kw.setdefault("settle_s", 0)
    return BatchConverter(control, routine, logger, **kw)


@pytest.mark.unit
class TestPartition:

    @pytest.mark.parametrize("n,g", [(0, 3), (1, 3), (3, 3), (7, 3), (10, 4), (5, 1), (2, 10)])
    def test_group_count_is_ceiling(self, n, g):
        groups = partition(list(range(n)), g)
        assert len(groups) == math.ceil(n / g)
        assert all(1 <= len(grp) <= g for grp in groups)
        assert [x for grp in groups for x in grp] == list(range(n))

    def test_seven_by_three(self):
        assert [len(g) for g in partition(list("abcdefg"), 3)] == [3, 3, 1]

    def test_zero_size_rejected(self):
        with pytest.raises(ValueError):
            partition([1, 2], 0)


@pytest.mark.unit
class TestBatchConverterConfig:

    def test_missing_dest_size(self, logger):
        with pytest.raises(ConfigError):
            BatchConverter(None, None, logger, dest_size="  ", controller_type="NVMe")

    def test_group_size_below_one(self, logger):
        with pytest.raises(ConfigError):
            BatchConverter(None, None, logger, dest_size=DEST, controller_type="NVMe", group_size=0)

    def test_bad_controller(self, logger):
        with pytest.raises(ConfigError):
            BatchConverter(None, None, logger, dest_size=DEST, controller_type="IDE")

    def test_controller_is_normalized(self, logger):
        conv = BatchConverter(None, None, logger, dest_size=DEST, controller_type="nvme")
        assert conv.controller_type == "NVMe"


@pytest.mark.unit
class TestBatchConverterRun:

    def test_seven_vms_three_groups_no_overlap(self, logger):
        control, vms = _fleet(7)
        routine = FakeRoutine(control, delay_s=0.05)
        report = _converter(control, routine, logger).run(vms)

        assert [len(g) for g in report.plan.groups] == [3, 3, 1]
        assert routine.max_in_flight <= 3
        assert sorted(r.vm_name for r in report.results) == sorted(vm.name for vm in vms)
        assert all(r.success for r in report.results)
        assert report.summary.ok

        # every task of group k ends before any task of group k+1 starts
        groups = [[vm.name for vm in g] for g in report.plan.groups]
        for cur, nxt in zip(groups, groups[1:]):
            last_end = max(routine.windows[n][1] for n in cur)
            first_start = min(routine.windows[n][0] for n in nxt)
            assert last_end <= first_start

    def test_group_index_recorded(self, logger):
        control, vms = _fleet(4)
        report = _converter(control, FakeRoutine(control), logger, group_size=2).run(vms)
        by_name = {r.vm_name: r.group_index for r in report.results}
        assert by_name == {"vm1": 1, "vm2": 1, "vm3": 2, "vm4": 2}

    def test_preview_runs_nothing(self, logger):
        control, vms = _fleet(5)
        routine = FakeRoutine(control)
        report = _converter(control, routine, logger).run(vms, preview=True)

        assert report.preview
        assert report.results is None
        assert report.plan.vm_count == 5
        assert routine.calls == []
        assert control.started == []

    def test_empty_input(self, logger):
        control, _ = _fleet(0)
        report = _converter(control, FakeRoutine(control), logger).run([])
        assert report.results == []
        assert report.plan.groups == []


@pytest.mark.unit
class TestValidation:

    def test_controller_match_with_size_mismatch_is_success(self, logger):
        control, vms = _fleet(1)
        routine = FakeRoutine(control, outcomes={"vm1": "ctrl_only"})
        (res,) = _converter(control, routine, logger).run(vms).results

        assert res.success
        assert res.new_size == SRC
        assert res.controller_type == "NVMe"
        assert "Controller successfully converted" in res.message
        assert "size validation secondary" in res.message

    def test_size_match_with_controller_mismatch_is_success(self, logger):
        control, vms = _fleet(1)
        routine = FakeRoutine(control, outcomes={"vm1": "size_only"})
        (res,) = _converter(control, routine, logger).run(vms).results
        assert res.success
        assert res.new_size == DEST
        assert res.controller_type == "SCSI"

    def test_both_mismatch_is_failure(self, logger):
        control, vms = _fleet(1)
        routine = FakeRoutine(control, outcomes={"vm1": "noop"})
        (res,) = _converter(control, routine, logger).run(vms).results
        assert not res.success
        assert res.error
        assert res.new_size == SRC

    def test_case_insensitive_match(self, logger):
        control, vms = _fleet(1)
        control.set_vm(RG, "vm1", size=DEST.upper(), controller="nvme")
        conv = _converter(control, None, logger, dest_size=DEST.lower())

        res = conv.validate(_task(vms[0], DEST.lower()))
        assert res.success
        assert res.message.startswith("Converted to")

    def test_validation_read_failure_is_per_vm_failure(self, logger):
        control, vms = _fleet(2)
        control.describe_errors["vm1"] = AzureCLIError(code=60, msg="throttled")
        results = {r.vm_name: r for r in _converter(control, FakeRoutine(control), logger).run(vms).results}

        assert not results["vm1"].success
        assert "could not re-read" in results["vm1"].message
        assert results["vm2"].success

    def test_single_validation_read_per_vm(self, logger):
        control, vms = _fleet(3)
        _converter(control, FakeRoutine(control), logger).run(vms)
        assert sorted(control.describe_calls) == ["vm1", "vm2", "vm3"]


@pytest.mark.unit
class TestFailureIsolation:

    def test_routine_error_does_not_affect_siblings(self, logger):
        control, vms = _fleet(3)
        boom = ConversionScriptError(code=64, msg="Conversion script exited 1: Az module missing")
        routine = FakeRoutine(control, outcomes={"vm2": boom})
        results = {r.vm_name: r for r in _converter(control, routine, logger).run(vms).results}

        assert results["vm1"].success and results["vm3"].success
        assert not results["vm2"].success
        assert results["vm2"].message == "Conversion routine failed"
        assert "Az module missing" in results["vm2"].error
        assert results["vm2"].new_size == SRC

    def test_unexpected_routine_exception_is_captured(self, logger):
        control, vms = _fleet(2)
        routine = FakeRoutine(control, outcomes={"vm1": RuntimeError("pwsh crashed")})
        results = {r.vm_name: r for r in _converter(control, routine, logger).run(vms).results}
        assert not results["vm1"].success
        assert "pwsh crashed" in results["vm1"].error
        assert results["vm2"].success

    def test_failed_group_does_not_stop_later_groups(self, logger):
        control, vms = _fleet(4)
        routine = FakeRoutine(control, outcomes={"vm1": RuntimeError("x"), "vm2": RuntimeError("y")})
        report = _converter(control, routine, logger, group_size=2).run(vms)
        assert report.summary.total == 4
        assert report.summary.failed == 2
        assert sorted(routine.calls) == ["vm1", "vm2", "vm3", "vm4"]


@pytest.mark.unit
class TestFallbacks:

    def test_task_returning_none_counts_as_success(self, logger):
        control, vms = _fleet(2)
        conv = _converter(control, FakeRoutine(control), logger, task_fn=lambda task: None)
        results = conv.run(vms).results

        assert len(results) == 2
        for r in results:
            assert r.success
            assert r.new_size == "unknown"
            assert r.original_size == SRC

    def test_task_raising_counts_as_failure(self, logger):
        control, vms = _fleet(2)

        def task_fn(task):
            if task.vm.name == "vm1":
                raise KeyError("no result")
            return ConversionResult(True, task.vm.name, task.vm.size, DEST, 0.0, "fine", group_index=task.group_index)

        results = {r.vm_name: r for r in _converter(control, None, logger, task_fn=task_fn).run(vms).results}
        assert not results["vm1"].success
        assert results["vm1"].error.startswith("KeyError")
        assert results["vm2"].success
        assert results["vm2"].message == "fine"


@pytest.mark.unit
class TestNotFoundIsFatal:

    def test_vm_vanishing_stops_later_groups(self, logger):
        control, vms = _fleet(5)
        routine = FakeRoutine(control, outcomes={"vm2": "vanish"})
        report = _converter(control, routine, logger, group_size=2).run(vms)

        # group 1 drained, nothing from group 2 onward started
        assert sorted(routine.calls) == ["vm1", "vm2"]
        assert isinstance(report.fatal, AzureNotFoundError)

    def test_results_before_the_stop_are_kept(self, logger):
        control, vms = _fleet(5)
        routine = FakeRoutine(control, outcomes={"vm3": "vanish"})
        report = _converter(control, routine, logger, group_size=2).run(vms)

        results = {r.vm_name: r for r in report.results}
        assert sorted(results) == ["vm1", "vm2", "vm3", "vm4"]
        assert results["vm1"].success and results["vm2"].success and results["vm4"].success
        assert not results["vm3"].success
        assert results["vm3"].message == "VM not found"
        assert "vm3" in results["vm3"].error
        assert results["vm3"].group_index == 2
        assert report.summary.failed == 1
        assert not report.summary.ok


@pytest.mark.unit
class TestStartVm:

    def test_deallocated_vm_is_started(self, logger):
        control, vms = _fleet(1, power="deallocated")
        (res,) = _converter(control, FakeRoutine(control), logger).run(vms).results
        assert control.started == ["vm1"]
        assert res.started_vm

    def test_running_vm_is_not_started(self, logger):
        control, vms = _fleet(1, power="running")
        (res,) = _converter(control, FakeRoutine(control), logger).run(vms).results
        assert control.started == []
        assert not res.started_vm

    def test_unknown_state_is_read_before_deciding(self, logger):
        control, _ = _fleet(1, power="stopped")
        vm = VMDescriptor(name="vm1", resource_group=RG, size=SRC)
        (res,) = _converter(control, FakeRoutine(control), logger).run([vm]).results
        assert control.started == ["vm1"]
        assert res.success

    def test_start_failure_is_per_vm_failure(self, logger):
        control, vms = _fleet(2)
        control.start_errors.add("vm1")
        routine = FakeRoutine(control)
        results = {r.vm_name: r for r in _converter(control, routine, logger).run(vms).results}

        assert not results["vm1"].success
        assert results["vm1"].message == "Failed to start VM"
        assert "vm1" not in routine.calls
        assert results["vm2"].success


@pytest.mark.unit
class TestSettle:

    def test_settle_sleeps_once_per_vm(self, logger):
        control, vms = _fleet(2)
        sleeps = []
        _converter(control, FakeRoutine(control), logger, settle_s=12, sleep=sleeps.append).run(vms)
        assert sleeps == [12.0, 12.0]

    def test_no_settle_on_routine_failure(self, logger):
        control, vms = _fleet(1)
        sleeps = []
        routine = FakeRoutine(control, outcomes={"vm1": RuntimeError("bad")})
        _converter(control, routine, logger, settle_s=5, sleep=sleeps.append).run(vms)
        assert sleeps == []

# SPDX-License-Identifier: LGPL-3.0-or-later
import io
import json

import pytest
from rich.console import Console

from az2nvme.azure.exceptions import AzureNotFoundError
from az2nvme.azure.models import (
    BatchPlan,
    BatchReport,
    ConversionResult,
    RunConfig,
    RunSummary,
    SelectConfig,
    TagResult,
    VMDescriptor,
)
from az2nvme.azure.report import print_report, print_tag_results, report_to_jsonable, write_report


def _console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def _report(preview=False):
    vms = [VMDescriptor(f"vm{i}", "rg1", "Standard_E4s_v3") for i in range(1, 4)]
    plan = BatchPlan(groups=[vms[:2], vms[2:]])
    if preview:
        return BatchReport(plan=plan, preview=True)
    results = [
        ConversionResult(True, "vm1", "Standard_E4s_v3", "Standard_E4bds_v5", 61.0, "Converted", group_index=1,
                         controller_type="NVMe"),
        ConversionResult(False, "vm3", "Standard_E4s_v3", "Standard_E4s_v3", 5.0, "Conversion routine failed",
                         error="exited 1", group_index=2),
    ]
    return BatchReport(plan=plan, preview=False, summary=RunSummary(results=results, duration_s=70.0))


@pytest.mark.unit
class TestConsoleOutput:

    def test_preview_prints_plan(self):
        con = _console()
        print_report(_report(preview=True), console=con)
        out = con.file.getvalue()
        assert "planned groups" in out
        assert "vm1 (Standard_E4s_v3), vm2 (Standard_E4s_v3)" in out

    def test_results_and_summary(self):
        con = _console()
        print_report(_report(), console=con)
        out = con.file.getvalue()
        assert "Conversion results" in out
        assert "exited 1" in out
        assert "total=2  succeeded=1  failed=1" in out

    def test_tag_results(self):
        con = _console()
        print_tag_results(
            [
                TagResult("rg-a", changed=True, applied=True, before={}, after={"env": "prod"}),
                TagResult("rg-b", changed=True, applied=False, before={}, after={"env": "prod"}),
                TagResult("rg-c", changed=False, applied=False, before={"env": "prod"}, after={"env": "prod"}),
                TagResult("rg-d", changed=True, applied=False, before={}, after={"env": "prod"}, error="denied"),
            ],
            console=con,
        )
        out = con.file.getvalue()
        for word in ("updated", "would update", "unchanged", "failed"):
            assert word in out

    def test_stopped_run_is_flagged(self):
        base = _report()
        fatal = AzureNotFoundError(code=63, msg="ResourceNotFound: vm3")
        con = _console()
        print_report(BatchReport(plan=base.plan, preview=False, summary=base.summary, fatal=fatal), console=con)
        assert "stopped early: ResourceNotFound: vm3" in con.file.getvalue()

    def test_no_summary_outside_preview(self):
        con = _console()
        print_report(BatchReport(plan=BatchPlan(groups=[]), preview=False), console=con)
        assert "No conversions ran" in con.file.getvalue()


@pytest.mark.unit
class TestJsonReport:

    def test_jsonable_shape(self):
        cfg = RunConfig(select=SelectConfig(resource_group="rg1", source_size="Standard_E4s_v3"))
        cfg.convert.dest_size = "Standard_E4bds_v5"
        data = report_to_jsonable(_report(), cfg, "t1")

        assert data["run_tag"] == "t1"
        assert data["groups"] == [["vm1", "vm2"], ["vm3"]]
        assert data["summary"]["failed"] == 1
        assert data["summary"]["results"][0]["vm_name"] == "vm1"
        assert data["conversion"]["controller_type"] == "NVMe"

    def test_preview_has_no_summary(self):
        data = report_to_jsonable(_report(preview=True), RunConfig(), "p")
        assert data["preview"] is True
        assert data["summary"] is None
        assert data["fatal"] is None

    def test_fatal_is_serialized(self):
        base = _report()
        fatal = AzureNotFoundError(code=63, msg="ResourceNotFound: vm3", context={"vm": "vm3"})
        data = report_to_jsonable(
            BatchReport(plan=base.plan, preview=False, summary=base.summary, fatal=fatal), RunConfig(), "t2"
        )
        assert data["fatal"] == {
            "type": "AzureNotFoundError",
            "code": 63,
            "message": "ResourceNotFound: vm3",
            "context": {"vm": "vm3"},
        }

    def test_write_report(self, tmp_path, logger):
        cfg = RunConfig(output_dir=tmp_path / "out")
        path = write_report(_report(), cfg, "20260101-000000", logger)
        assert path == tmp_path / "out" / "az2nvme-run-20260101-000000.json"
        assert json.loads(path.read_text(encoding="utf-8"))["summary"]["total"] == 2

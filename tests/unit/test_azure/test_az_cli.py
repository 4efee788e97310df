# SPDX-License-Identifier: LGPL-3.0-or-later
"""
Unit tests for the 'az' CLI wrapper (subprocess is always mocked).
"""
import json
import subprocess
import unittest
from unittest.mock import patch

import pytest

from az2nvme.azure import cli
from az2nvme.azure.exceptions import AzureAuthError, AzureCLIError, AzureNotFoundError, is_not_found


def _cp(rc=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(["az"], rc, stdout=stdout, stderr=stderr)


class TestRunAzJson(unittest.TestCase):

    def setUp(self):
        p = patch.object(cli, "_backoff_sleep")
        self.sleep = p.start()
        self.addCleanup(p.stop)

    def test_parses_json_and_appends_output_flags(self):
        with patch.object(cli.subprocess, "run", return_value=_cp(stdout='{"name": "rg1"}')) as run:
            self.assertEqual(cli.run_az_json(["group", "show", "--name", "rg1"]), {"name": "rg1"})
        cmd = run.call_args.args[0]
        self.assertEqual(cmd[:3], ["az", "group", "show"])
        self.assertIn("--only-show-errors", cmd)
        self.assertEqual(cmd[cmd.index("--output") + 1], "json")

    def test_empty_output_is_none(self):
        with patch.object(cli.subprocess, "run", return_value=_cp(stdout="  \n")):
            self.assertIsNone(cli.run_az_json(["vm", "start"]))

    def test_transient_failure_is_retried(self):
        side = [_cp(rc=1, stderr="(TooManyRequests) Too many requests, retry later"), _cp(stdout="[]")]
        with patch.object(cli.subprocess, "run", side_effect=side) as run:
            self.assertEqual(cli.run_az_json(["vm", "list"], retries=3), [])
        self.assertEqual(run.call_count, 2)
        self.assertEqual(self.sleep.call_count, 1)

    def test_mutating_call_not_retried(self):
        with patch.object(cli.subprocess, "run", return_value=_cp(rc=1, stderr="Gateway Timeout")) as run:
            with self.assertRaises(AzureCLIError):
                cli.run_az_json(["vm", "start"], retries=1)
        self.assertEqual(run.call_count, 1)

    def test_non_transient_failure_raises_at_once(self):
        with patch.object(cli.subprocess, "run", return_value=_cp(rc=2, stderr="AuthorizationFailed")) as run:
            with self.assertRaises(AzureCLIError) as ctx:
                cli.run_az_json(["vm", "list"], retries=3)
        self.assertEqual(run.call_count, 1)
        self.assertEqual(ctx.exception.code, 60)

    def test_not_found_is_distinct(self):
        stderr = "(ResourceNotFound) The Resource 'Microsoft.Compute/virtualMachines/vm9' was not found."
        with patch.object(cli.subprocess, "run", return_value=_cp(rc=3, stderr=stderr)) as run:
            with self.assertRaises(AzureNotFoundError) as ctx:
                cli.run_az_json(["vm", "show"], retries=3)
        self.assertEqual(run.call_count, 1)
        self.assertEqual(ctx.exception.code, 63)

    def test_az_missing(self):
        with patch.object(cli.subprocess, "run", side_effect=FileNotFoundError("az")):
            with self.assertRaises(AzureCLIError) as ctx:
                cli.run_az_json(["account", "show"])
        self.assertIn("not found", str(ctx.exception))

    def test_bad_json(self):
        with patch.object(cli.subprocess, "run", return_value=_cp(stdout="{not json")):
            with self.assertRaises(AzureCLIError):
                cli.run_az_json(["group", "list"])

    def test_timeout_retried_then_raised(self):
        exc = subprocess.TimeoutExpired(["az"], 5)
        with patch.object(cli.subprocess, "run", side_effect=[exc, exc]) as run:
            with self.assertRaises(AzureCLIError) as ctx:
                cli.run_az_json(["vm", "list"], timeout_s=5, retries=2)
        self.assertEqual(run.call_count, 2)
        self.assertIn("timed out", str(ctx.exception))


@pytest.mark.unit
class TestValidateAccount:

    def test_not_logged_in(self):
        with patch.object(cli, "run_az_json", side_effect=AzureCLIError(code=60, msg="Please run 'az login'")):
            with pytest.raises(AzureAuthError) as ei:
                cli.validate_account(None, None)
        assert ei.value.code == 61

    def test_subscription_is_selected(self):
        calls = []

        def fake(args, **kw):
            calls.append(args)
            return {"id": "sub-2", "tenantId": "t1", "name": "SAP"}

        with patch.object(cli, "run_az_json", side_effect=fake):
            acct = cli.validate_account("sub-2", "t1")
        assert acct["id"] == "sub-2"
        assert ["account", "set", "--subscription", "sub-2"] in calls

    def test_tenant_mismatch(self):
        with patch.object(cli, "run_az_json", return_value={"id": "s", "tenantId": "other"}):
            with pytest.raises(AzureAuthError):
                cli.validate_account(None, "expected")


@pytest.mark.unit
class TestVmHelpers:

    def test_power_state_from_list_details(self):
        assert cli.extract_power_state_from_vm_dict({"powerState": "VM deallocated"}) == "deallocated"

    def test_power_state_from_instance_view(self):
        vm = {"instanceView": {"statuses": [{"code": "ProvisioningState/succeeded"}, {"code": "PowerState/running"}]}}
        assert cli.extract_power_state_from_vm_dict(vm) == "running"

    def test_power_state_absent(self):
        assert cli.extract_power_state_from_vm_dict({}) is None

    def test_get_vm_power_state_bare_instance_view(self):
        iv = {"statuses": [{"code": "PowerState/stopped"}]}
        with patch.object(cli, "run_az_json", return_value=iv):
            assert cli.get_vm_power_state("rg", "vm") == "stopped"

    def test_get_vm_power_state_unknown(self):
        with patch.object(cli, "run_az_json", return_value={"statuses": []}):
            assert cli.get_vm_power_state("rg", "vm") == "unknown"

    def test_size_and_controller(self):
        vm = {"hardwareProfile": {"vmSize": "Standard_E4bds_v5"}, "storageProfile": {"diskControllerType": "NVMe"}}
        assert cli.vm_size(vm) == "Standard_E4bds_v5"
        assert cli.vm_controller_type(vm) == "NVMe"
        assert cli.vm_controller_type({}) == "SCSI"
        assert cli.vm_size({}) == ""

    def test_list_vms_with_details(self):
        with patch.object(cli, "run_az_json", return_value=[{"name": "a"}]) as run:
            assert cli.list_vms("rg1", show_details=True) == [{"name": "a"}]
        assert run.call_args.args[0] == ["vm", "list", "--resource-group", "rg1", "--show-details"]

    def test_vm_start_single_attempt(self):
        with patch.object(cli, "run_az_json", return_value=None) as run:
            cli.vm_start("rg", "vm")
        assert run.call_args.kwargs["retries"] == 1


@pytest.mark.unit
class TestGroupHelpers:

    def test_update_tags_args(self):
        with patch.object(cli, "run_az_json", return_value={"name": "rg"}) as run:
            cli.group_update_tags("rg", {"env": "prod", "owner": "ops"})
        args = run.call_args.args[0]
        assert args[:5] == ["group", "update", "--name", "rg", "--tags"]
        assert args[5:] == ["env=prod", "owner=ops"]
        assert run.call_args.kwargs["retries"] == 1

    def test_update_tags_empty_clears(self):
        with patch.object(cli, "run_az_json", return_value={}) as run:
            cli.group_update_tags("rg", {})
        assert run.call_args.args[0][-1] == ""

    def test_group_list(self):
        payload = json.loads('[{"name": "rg1"}, {"name": "rg2"}]')
        with patch.object(cli, "run_az_json", return_value=payload):
            assert [g["name"] for g in cli.group_list()] == ["rg1", "rg2"]


@pytest.mark.unit
def test_is_not_found_markers():
    assert is_not_found("(ResourceGroupNotFound) Resource group 'x' could not be found.")
    assert is_not_found("ERROR: (ResourceNotFound) ...")
    assert not is_not_found("AuthorizationFailed")

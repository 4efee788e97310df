# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/cli.py

from __future__ import annotations

import json
import logging
import random
import subprocess
import time
from typing import Any, Dict, List, Optional

from .exceptions import (
    AzureAuthError,
    AzureCLIError,
    is_not_found,
    wrap_azure_cli_error,
    wrap_not_found,
)

LOG = logging.getLogger(__name__)


def _is_transient(stderr: str) -> bool:
    s = (stderr or "").lower()
    return any(
        x in s
        for x in (
            "throttle",
            "too many requests",
            "timeout",
            "timed out",
            "temporarily unavailable",
            "internal server error",
            "gateway timeout",
            "connection reset",
            "connection aborted",
            "rate limit",
            "server busy",
            "retry later",
        )
    )


def _backoff_sleep(attempt: int, base: float, cap: float) -> None:
    # exp backoff with jitter
    t = min(cap, base * (2 ** attempt))
    t = t * (0.7 + random.random() * 0.6)
    time.sleep(t)


def run_az_json(args: List[str], *, timeout_s: int = 300, retries: int = 3) -> Any:
    """
    Run 'az <args> --output json --only-show-errors' and parse JSON.

    Transient control-plane failures (throttling, timeouts) are retried up to
    `retries` attempts. "Not found" responses raise AzureNotFoundError at once.
    Mutating calls pass retries=1.
    """
    cmd = ["az"] + args + ["--output", "json", "--only-show-errors"]
    LOG.debug("az %s", " ".join(args))

    last_err = ""
    for attempt in range(max(1, retries)):
        try:
            p = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_s)
        except FileNotFoundError as e:
            raise wrap_azure_cli_error("Azure CLI 'az' not found. Install Azure CLI.", e)
        except subprocess.TimeoutExpired as e:
            last_err = f"az timed out after {timeout_s}s"
            if attempt + 1 < retries:
                _backoff_sleep(attempt, 1.0, 15.0)
                continue
            raise wrap_azure_cli_error(last_err, e, args=" ".join(args))

        if p.returncode == 0:
            out = (p.stdout or "").strip()
            if out == "":
                return None
            try:
                return json.loads(out)
            except ValueError as e:
                raise wrap_azure_cli_error(f"Failed to parse az JSON output: {e}", e, args=" ".join(args))

        last_err = (p.stderr or p.stdout or "").strip()
        if is_not_found(last_err):
            raise wrap_not_found(f"az {' '.join(args[:2])}: {last_err}", args=" ".join(args))
        if attempt + 1 < retries and _is_transient(last_err):
            LOG.debug("Transient az failure (attempt %d/%d): %s", attempt + 1, retries, last_err)
            _backoff_sleep(attempt, 1.0, 15.0)
            continue

        raise wrap_azure_cli_error(f"az failed: {' '.join(args)} :: {last_err}", rc=p.returncode)

    raise wrap_azure_cli_error(f"az failed: {' '.join(args)} :: {last_err}")


def validate_account(subscription: Optional[str], tenant: Optional[str]) -> Dict[str, Any]:
    try:
        acct = run_az_json(["account", "show"], timeout_s=30, retries=2)
    except AzureCLIError as e:
        raise AzureAuthError(code=61, msg=f"Azure CLI not logged in or not usable: {e}", cause=e)

    if subscription:
        run_az_json(["account", "set", "--subscription", subscription], timeout_s=60, retries=1)
        acct = run_az_json(["account", "show"], timeout_s=30, retries=2)

    if tenant and str((acct or {}).get("tenantId")) != str(tenant):
        raise AzureAuthError(code=61, msg=f"Tenant mismatch: expected {tenant}, got {(acct or {}).get('tenantId')}")

    return acct or {}


# ---------------------------------------------------------------------------
# Resource groups
# ---------------------------------------------------------------------------

def group_show(name: str) -> Dict[str, Any]:
    return run_az_json(["group", "show", "--name", name], timeout_s=60, retries=3) or {}


def group_list() -> List[Dict[str, Any]]:
    return list(run_az_json(["group", "list"], timeout_s=120, retries=3) or [])


def group_update_tags(name: str, tags: Dict[str, str]) -> Dict[str, Any]:
    """Replace the tag set of a resource group with `tags`."""
    args = ["group", "update", "--name", name, "--tags"]
    args += [f"{k}={v}" for k, v in tags.items()] if tags else [""]
    return run_az_json(args, timeout_s=120, retries=1) or {}


# ---------------------------------------------------------------------------
# Virtual machines
# ---------------------------------------------------------------------------

def list_vms(resource_group: Optional[str], *, show_details: bool = False) -> List[Dict[str, Any]]:
    """
    List VMs, optionally with instance details (including power state).

    Args:
        resource_group: Optional resource group filter
        show_details: If True, includes power state (slower but more complete)
    """
    args = ["vm", "list"]
    if resource_group:
        args += ["--resource-group", resource_group]
    if show_details:
        args += ["--show-details"]
    return list(run_az_json(args, timeout_s=180, retries=3) or [])


def get_vm_show(rg: str, name: str) -> Dict[str, Any]:
    return run_az_json(["vm", "show", "--resource-group", rg, "--name", name], timeout_s=120, retries=3) or {}


def extract_power_state_from_vm_dict(vm: Dict[str, Any]) -> Optional[str]:
    """
    Extract power state from a VM dictionary ('az vm list -d' or an embedded instance view).

    Returns e.g. "running", "stopped", "deallocated", or None if not present.
    """
    ps = vm.get("powerState")
    if ps:
        # "VM running" / "VM deallocated"
        parts = str(ps).lower().split()
        if len(parts) >= 2:
            return parts[1]
        return str(ps).lower()

    iv = vm.get("instanceView")
    if iv:
        for st in iv.get("statuses") or []:
            code = st.get("code") or ""
            if code.lower().startswith("powerstate/"):
                return code.split("/", 1)[1].lower()

    return None


def get_vm_power_state(rg: str, name: str) -> str:
    """Get VM power state via the instance view (accurate, one call per VM)."""
    iv = run_az_json(["vm", "get-instance-view", "--resource-group", rg, "--name", name], timeout_s=120, retries=3)
    found = extract_power_state_from_vm_dict(iv or {})
    if found:
        return found
    # older az releases return the instance view itself
    for st in ((iv or {}).get("statuses") or []):
        code = st.get("code") or ""
        if code.lower().startswith("powerstate/"):
            return code.split("/", 1)[1].lower()
    return "unknown"


def vm_start(rg: str, name: str) -> None:
    run_az_json(["vm", "start", "--resource-group", rg, "--name", name], timeout_s=900, retries=1)


def vm_size(vm: Dict[str, Any]) -> str:
    return str(((vm.get("hardwareProfile") or {}).get("vmSize")) or "")


def vm_controller_type(vm: Dict[str, Any]) -> str:
    # Absent on older VMs, which are SCSI.
    return str(((vm.get("storageProfile") or {}).get("diskControllerType")) or "SCSI")

# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/discovery.py

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List

from ..core.logger import Log
from . import cli
from .exceptions import AzureError, AzureNotFoundError, wrap_not_found
from .models import SelectConfig, VMDescriptor


def _same_size(a: str, b: str) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


def descriptor_from_vm_dict(vm: Dict[str, Any], *, resource_group: str, power_state: str = "unknown") -> VMDescriptor:
    return VMDescriptor(
        name=vm.get("name") or "",
        resource_group=vm.get("resourceGroup") or resource_group,
        size=cli.vm_size(vm),
        power_state=power_state,
        controller_type=cli.vm_controller_type(vm),
        id=vm.get("id") or "",
    )


class TargetResolver:
    """
    Resolves the VMs a convert run targets.

    Either a single named VM, or every VM in the resource group whose size
    matches the source size. With ignore_running, VMs that are running (or
    whose power state cannot be read) are dropped before grouping.
    """

    def __init__(self, control: Any, logger: logging.Logger):
        self.control = control
        self.logger = logger

    def resolve(self, select: SelectConfig) -> List[VMDescriptor]:
        rg = select.resource_group
        try:
            self.control.show_group(rg)
        except AzureNotFoundError as e:
            raise wrap_not_found(f"Resource group not found: {rg}", e, resource_group=rg) from e

        if select.vm_name:
            vms = [self._describe_one(rg, select.vm_name)]
        else:
            vms = self._by_source_size(rg, select.source_size or "")

        if select.ignore_running:
            vms = self.filter_not_running(vms)

        self.logger.info("Resolved %d target VM(s) in %s", len(vms), rg)
        return vms

    def _describe_one(self, rg: str, name: str) -> VMDescriptor:
        try:
            vm = self.control.describe_vm(rg, name)
        except AzureNotFoundError as e:
            raise wrap_not_found(f"VM not found: {rg}/{name}", e, resource_group=rg, vm=name) from e
        return descriptor_from_vm_dict(vm, resource_group=rg, power_state=self._power_state_or_unknown(rg, name))

    def _by_source_size(self, rg: str, source_size: str) -> List[VMDescriptor]:
        out: List[VMDescriptor] = []
        for vm in self.control.list_vms(rg):
            name = vm.get("name") or ""
            if not name:
                continue
            if not _same_size(cli.vm_size(vm), source_size):
                Log.trace(self.logger, "skip %s: size %s != %s", name, cli.vm_size(vm), source_size)
                continue
            ps = cli.extract_power_state_from_vm_dict(vm) or "unknown"
            out.append(descriptor_from_vm_dict(vm, resource_group=rg, power_state=ps))
        return out

    def _power_state_or_unknown(self, rg: str, name: str) -> str:
        try:
            return self.control.power_state(rg, name)
        except AzureError as e:
            Log.warn(self.logger, f"Could not read power state: {e}", vm=name)
            return "unknown"

    def filter_not_running(self, vms: List[VMDescriptor]) -> List[VMDescriptor]:
        """
        Drop running VMs. The state is re-read per VM; a failed or unknown read excludes the VM.
        """
        kept: List[VMDescriptor] = []
        for vm in vms:
            try:
                ps = self.control.power_state(vm.resource_group, vm.name)
            except AzureError as e:
                Log.warn(self.logger, f"Excluding VM, power state unreadable: {e}", vm=vm.name)
                continue
            if not ps or ps == "unknown":
                Log.warn(self.logger, "Excluding VM, power state unknown", vm=vm.name)
                continue
            if ps == "running":
                self.logger.info("Excluding running VM %s", vm.name)
                continue
            kept.append(replace(vm, power_state=ps))
        return kept

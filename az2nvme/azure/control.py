# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/control.py
"""
Control-plane capability object.

The converter and tagger only ever talk to Azure through this surface, so a
fake with the same methods is all a test needs.
"""

from __future__ import annotations

from typing import Any, Dict, List

from . import cli


class AzCliControlPlane:
    """Azure control plane backed by the 'az' CLI."""

    def describe_vm(self, resource_group: str, name: str) -> Dict[str, Any]:
        return cli.get_vm_show(resource_group, name)

    def list_vms(self, resource_group: str) -> List[Dict[str, Any]]:
        return cli.list_vms(resource_group, show_details=True)

    def power_state(self, resource_group: str, name: str) -> str:
        return cli.get_vm_power_state(resource_group, name)

    def start_vm(self, resource_group: str, name: str) -> None:
        cli.vm_start(resource_group, name)

    def show_group(self, name: str) -> Dict[str, Any]:
        return cli.group_show(name)

    def list_groups(self) -> List[Dict[str, Any]]:
        return cli.group_list()

    def update_group_tags(self, name: str, tags: Dict[str, str]) -> Dict[str, Any]:
        return cli.group_update_tags(name, tags)

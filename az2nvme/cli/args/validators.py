# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/cli/args/validators.py
from __future__ import annotations

import argparse
from typing import Any, Dict

from ...azure.tagging import parse_tag_pairs
from .helpers import _require, _resource_groups


def _validate_cmd_convert(args: argparse.Namespace) -> None:
    rgs = _resource_groups(args)
    if len(rgs) != 1:
        raise SystemExit(f"convert: exactly one --resource-group is required (got {len(rgs)})")
    if not _require(getattr(args, "dest_size", None)):
        raise SystemExit("convert: --dest-size is required")
    if not (_require(getattr(args, "vm_name", None)) or _require(getattr(args, "source_size", None))):
        raise SystemExit("convert: give --vm-name or --source-size")
    if int(getattr(args, "group_size", 3)) < 1:
        raise SystemExit(f"convert: --group-size must be >= 1 (got {args.group_size})")
    if float(getattr(args, "settle", 0.0)) < 0:
        raise SystemExit(f"convert: --settle must be >= 0 (got {args.settle})")


def _validate_cmd_tag(args: argparse.Namespace) -> None:
    if not (_resource_groups(args) or _require(getattr(args, "rg_pattern", None))):
        raise SystemExit("tag: give --resource-group and/or --rg-pattern")
    try:
        tags = parse_tag_pairs(list(getattr(args, "tags", None) or []))
    except ValueError as e:
        raise SystemExit(f"tag: {e}")
    if not tags:
        raise SystemExit("tag: at least one --tag key=value is required")


def validate_args(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    cmd = getattr(args, "cmd", None)
    if cmd == "convert":
        _validate_cmd_convert(args)
    elif cmd == "tag":
        _validate_cmd_tag(args)
    else:
        raise SystemExit(f"Unknown cmd: {cmd!r} (expected convert or tag)")

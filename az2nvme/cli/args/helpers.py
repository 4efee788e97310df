# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/cli/args/helpers.py
from __future__ import annotations

import argparse
from typing import Any, List, Optional


def _require(v: Any) -> bool:
    """True if v is meaningfully present (treats empty/whitespace-only strings as missing)."""
    if v is None:
        return False
    if isinstance(v, str):
        return v.strip() != ""
    if isinstance(v, (list, tuple, dict)):
        return len(v) > 0
    return True


def _str_or_none(v: Any) -> Optional[str]:
    return str(v).strip() if _require(v) else None


def _resource_groups(args: argparse.Namespace) -> List[str]:
    """Resource groups from repeated -g flags, also accepting comma-separated values."""
    out: List[str] = []
    for raw in getattr(args, "resource_group", None) or []:
        for name in str(raw).split(","):
            name = name.strip()
            if name and name not in out:
                out.append(name)
    return out

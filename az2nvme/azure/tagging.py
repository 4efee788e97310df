# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/tagging.py

from __future__ import annotations

import fnmatch
import logging
from typing import Any, Dict, List

from ..core.logger import Log
from .exceptions import AzureError, AzureNotFoundError, wrap_not_found
from .models import TagConfig, TagResult


def _split_pairs(raw: str) -> List[str]:
    pieces = [p.strip() for p in raw.split(",") if p.strip()]
    # "note=a,b" is one pair whose value holds a comma
    if len(pieces) > 1 and all("=" in p for p in pieces):
        return pieces
    return [raw.strip()] if raw.strip() else []


def parse_tag_pairs(pairs: List[str]) -> Dict[str, str]:
    """
    Parse ["env=prod", "owner=ops"] (or one comma-separated string) into a dict.

    A comma-separated string is split only when every piece is a key=value
    pair, so values may contain commas ("note=a,b").
    """
    out: Dict[str, str] = {}
    for raw in pairs:
        for pair in _split_pairs(str(raw)):
            if "=" not in pair:
                raise ValueError(f"tag must be key=value, got {pair!r}")
            k, v = pair.split("=", 1)
            k = k.strip()
            if not k:
                raise ValueError(f"tag key is empty in {pair!r}")
            out[k] = v.strip()
    return out


def merge_tags(current: Dict[str, str], wanted: Dict[str, str]) -> Dict[str, str]:
    merged = dict(current or {})
    merged.update(wanted)
    return merged


class ResourceGroupTagger:
    """
    Merges tags into resource groups. Existing tags survive; wanted values win.
    """

    def __init__(self, control: Any, logger: logging.Logger):
        self.control = control
        self.logger = logger

    def resolve_groups(self, cfg: TagConfig) -> List[str]:
        names = list(dict.fromkeys(cfg.resource_groups))
        if cfg.pattern:
            for g in self.control.list_groups():
                name = g.get("name") or ""
                if name and fnmatch.fnmatchcase(name, cfg.pattern) and name not in names:
                    names.append(name)
        return names

    def run(self, cfg: TagConfig) -> List[TagResult]:
        if not cfg.tags:
            raise ValueError("no tags given")

        names = self.resolve_groups(cfg)
        self.logger.info("Tagging %d resource group(s) with %s", len(names), cfg.tags)

        return [self.tag_one(name, cfg.tags, preview=cfg.preview) for name in names]

    def tag_one(self, name: str, wanted: Dict[str, str], *, preview: bool = False) -> TagResult:
        log = Log.bind(self.logger, resource_group=name)
        try:
            current = dict(self.control.show_group(name).get("tags") or {})
        except AzureNotFoundError as e:
            raise wrap_not_found(f"Resource group not found: {name}", e, resource_group=name) from e
        except AzureError as e:
            Log.fail(log, f"Could not read tags: {e}")
            return TagResult(name, changed=False, applied=False, before={}, after={}, error=str(e))

        after = merge_tags(current, wanted)
        if after == current:
            log.info("Tags already up to date")
            return TagResult(name, changed=False, applied=False, before=current, after=after)

        changes = {k: v for k, v in after.items() if current.get(k) != v}
        if preview:
            Log.ok(log, f"Preview: would set {changes}")
            return TagResult(name, changed=True, applied=False, before=current, after=after)

        try:
            self.control.update_group_tags(name, after)
        except AzureError as e:
            Log.fail(log, f"Tag update failed: {e}")
            return TagResult(name, changed=True, applied=False, before=current, after=after, error=str(e))

        Log.ok(log, f"Set {changes}")
        return TagResult(name, changed=True, applied=True, before=current, after=after)

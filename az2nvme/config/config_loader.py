# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/config/config_loader.py
"""
YAML/JSON run configuration.

Config files hold flat keys named like the CLI options (dashes or
underscores), e.g.:

    cmd: convert
    resource_group: rg-sap-prod
    source_size: Standard_E4s_v3
    dest_size: Standard_E4bds_v5
    controller_type: NVMe
    group_size: 3

Several files may be given; later files override earlier ones, and CLI
flags override all of them.
"""
from __future__ import annotations

import argparse
import glob
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from ..core.exceptions import wrap_config


def _norm_key(k: Any) -> str:
    return str(k).strip().replace("-", "_")


def _deep_merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in extra.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


class Config:
    @staticmethod
    def expand_configs(logger: logging.Logger, paths: Sequence[str]) -> List[Path]:
        """Expand ~ and globs; a pattern that matches nothing is an error."""
        out: List[Path] = []
        for raw in paths:
            p = str(Path(raw).expanduser())
            matches = sorted(glob.glob(p)) if any(ch in p for ch in "*?[") else [p]
            if not matches:
                raise wrap_config(f"Config pattern matched no files: {raw}", path=raw)
            for m in matches:
                mp = Path(m)
                if not mp.is_file():
                    raise wrap_config(f"Config file not found: {m}", path=m)
                out.append(mp)
        logger.debug("Config files: %s", [str(p) for p in out])
        return out

    @staticmethod
    def load_one(logger: logging.Logger, path: Path) -> Dict[str, Any]:
        raw = path.read_text(encoding="utf-8", errors="replace")
        try:
            if path.suffix.lower() == ".json":
                parsed = json.loads(raw)
            else:
                parsed = yaml.safe_load(raw)
        except (ValueError, yaml.YAMLError) as e:
            raise wrap_config(f"Cannot parse config {path}: {e}", e, path=str(path)) from e

        if parsed is None:
            logger.warning("Config %s is empty", path)
            return {}
        if not isinstance(parsed, dict):
            raise wrap_config(f"Top-level config must be a mapping: {path}", path=str(path))
        return {_norm_key(k): v for k, v in parsed.items()}

    @staticmethod
    def load_many(logger: logging.Logger, paths: Sequence[Path]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for p in paths:
            merged = _deep_merge(merged, Config.load_one(logger, Path(p)))
        return merged

    @staticmethod
    def _coerce_for_default(value: Any, current_default: Any) -> Any:
        # List-valued options (append) accept a scalar, a list, or a mapping (k=v pairs).
        if isinstance(current_default, list):
            if isinstance(value, dict):
                return [f"{k}={v}" for k, v in value.items()]
            if isinstance(value, (list, tuple)):
                return [str(x) for x in value]
            return [str(value)]
        return value

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """Set parser defaults from config so that CLI flags still override."""
        dests = {a.dest: a for a in parser._actions if a.dest and a.dest != argparse.SUPPRESS}
        defaults: Dict[str, Any] = {}
        for k, v in conf.items():
            if k in ("config", "help", "version"):
                continue
            action = dests.get(k)
            if action is None:
                logger.warning("Unknown config key ignored: %s", k)
                continue
            defaults[k] = Config._coerce_for_default(v, action.default)
        if defaults:
            parser.set_defaults(**defaults)

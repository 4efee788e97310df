# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/script.py
"""
External conversion routine: fetch once, share read-only, invoke per VM.
"""

from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import List, Optional

import requests
from rich.progress import BarColumn, DownloadColumn, Progress, TextColumn, TransferSpeedColumn

from ..core.utils import U
from .exceptions import ConversionScriptError, wrap_script_error
from .models import ScriptConfig

LOG = logging.getLogger(__name__)

SCRIPT_NAME = "Azure-NVMe-Conversion.ps1"


def _backoff_sleep(attempt: int, base: float, cap: float) -> None:
    t = min(cap, base * (2 ** attempt))
    t = t * (0.7 + random.random() * 0.6)
    time.sleep(t)


def download_script(
    url: str,
    dest: Path,
    *,
    retries: int = 3,
    connect_timeout_s: int = 15,
    read_timeout_s: int = 60,
    progress: Optional[Progress] = None,
) -> int:
    """
    Download `url` to `dest` through a '.part' temp file.

    Returns the number of bytes written.
    """
    temp = dest.parent / f"{dest.name}.part"
    U.ensure_dir(dest.parent)

    last_error = ""
    for attempt in range(max(1, retries)):
        try:
            resp = requests.get(url, stream=True, timeout=(connect_timeout_s, read_timeout_s), allow_redirects=True)
            resp.raise_for_status()

            total = resp.headers.get("Content-Length")
            task = None
            if progress is not None:
                task = progress.add_task(dest.name, total=int(total) if total and total.isdigit() else None)

            written = 0
            with open(temp, "wb") as f:
                for chunk in resp.iter_content(chunk_size=64 * 1024):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
                        if progress is not None and task is not None:
                            progress.update(task, completed=written)

            temp.replace(dest)
            return written

        except (requests.RequestException, OSError) as e:
            last_error = str(e)
            LOG.warning("Download attempt %d/%d failed: %s", attempt + 1, retries, e)
            if attempt + 1 < retries:
                _backoff_sleep(attempt, 1.0, 15.0)

    temp.unlink(missing_ok=True)
    raise wrap_script_error(f"Download failed after {retries} attempts: {last_error}", url=url)


def ensure_script(cfg: ScriptConfig, logger: logging.Logger) -> Path:
    """
    Resolve the local copy of the conversion routine.

    A configured local path wins; otherwise the URL is fetched into the cache
    directory unless a cached copy exists and refresh is off. A pinned sha256
    is verified either way.
    """
    if cfg.path is not None:
        path = Path(cfg.path).expanduser()
        if not path.is_file():
            raise wrap_script_error(f"Conversion script not found: {path}", path=str(path))
        logger.info("Using local conversion script %s", path)
    else:
        path = Path(cfg.cache_dir).expanduser() / SCRIPT_NAME
        if cfg.refresh or not path.is_file():
            logger.info("Fetching conversion script from %s", cfg.url)
            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                transient=True,
            ) as prog:
                n = download_script(cfg.url, path, progress=prog)
            logger.debug("Wrote %d bytes to %s", n, path)
        else:
            logger.info("Using cached conversion script %s", path)

    if cfg.sha256:
        digest = U.sha256_file(path)
        if digest.lower() != cfg.sha256.strip().lower():
            raise wrap_script_error(
                f"Conversion script checksum mismatch: expected {cfg.sha256}, got {digest}",
                path=str(path),
            )
    return path


class PowerShellConversionRoutine:
    """
    Invokes the conversion script once per VM with explicit named arguments.

    The script is an opaque black box: it mutates the VM and gives no
    structured output. Success here only means it exited 0.
    """

    def __init__(self, script_path: Path, cfg: ScriptConfig, logger: Optional[logging.Logger] = None):
        self.script_path = Path(script_path)
        self.cfg = cfg
        self.logger = logger or LOG

    def build_argv(self, *, resource_group: str, vm_name: str, controller_type: str, vm_size: str) -> List[str]:
        argv = [
            self.cfg.shell,
            "-NoProfile",
            "-NonInteractive",
            "-File",
            str(self.script_path),
            "-ResourceGroupName",
            resource_group,
            "-VMName",
            vm_name,
            "-NewControllerType",
            controller_type,
            "-VMSize",
            vm_size,
        ]
        if self.cfg.start_vm:
            argv.append("-StartVM")
        if self.cfg.fix_os_settings:
            argv.append("-FixOperatingSystemSettings")
        if self.cfg.ignore_module_check:
            argv.append("-IgnoreAzureModuleCheck")
        return argv

    def convert(self, *, resource_group: str, vm_name: str, controller_type: str, vm_size: str) -> str:
        """Run the routine; returns its combined output or raises ConversionScriptError."""
        argv = self.build_argv(
            resource_group=resource_group,
            vm_name=vm_name,
            controller_type=controller_type,
            vm_size=vm_size,
        )
        try:
            cp = U.run_cmd(self.logger, argv, check=False, stream=True)
        except OSError as e:
            raise wrap_script_error(f"Failed to launch {self.cfg.shell}: {e}", e, vm=vm_name) from e

        if cp.returncode != 0:
            raise ConversionScriptError(
                code=64,
                msg=f"Conversion script exited {cp.returncode}: {U.tail(cp.stdout, 3) or 'no output'}",
                context={"vm": vm_name, "rc": cp.returncode},
            )
        return cp.stdout or ""


__all__ = [
    "SCRIPT_NAME",
    "PowerShellConversionRoutine",
    "download_script",
    "ensure_script",
]

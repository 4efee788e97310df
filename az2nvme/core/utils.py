# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/core/utils.py
from __future__ import annotations

import datetime as _dt
import hashlib
import json
import logging
import shlex
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class U:
    @staticmethod
    def ensure_dir(p: Path) -> None:
        p.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def which(prog: str) -> Optional[str]:
        from shutil import which as _which
        return _which(prog)

    @staticmethod
    def now_ts() -> str:
        return _dt.datetime.now().strftime("%Y%m%d-%H%M%S")

    @staticmethod
    def json_dump(obj: Any) -> str:
        return json.dumps(obj, indent=2, sort_keys=True, default=str)

    @staticmethod
    def human_duration(seconds: Optional[float]) -> str:
        if seconds is None:
            return "-"
        s = int(round(seconds))
        h, rem = divmod(s, 3600)
        m, s = divmod(rem, 60)
        if h:
            return f"{h}h{m:02d}m{s:02d}s"
        if m:
            return f"{m}m{s:02d}s"
        return f"{s}s"

    @staticmethod
    def tail(text: str, lines: int = 20) -> str:
        parts = (text or "").strip().splitlines()
        return "\n".join(parts[-lines:])

    @staticmethod
    def pretty_cmd(cmd: List[str]) -> str:
        return " ".join(shlex.quote(x) for x in cmd)

    @staticmethod
    def sha256_file(path: Path) -> str:
        h = hashlib.sha256()
        with open(path, "rb") as f:
            for blk in iter(lambda: f.read(1024 * 1024), b""):
                h.update(blk)
        return h.hexdigest()

    @staticmethod
    def run_cmd(
        logger: logging.Logger,
        cmd: List[str],
        *,
        check: bool = True,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        cwd: Optional[Union[str, Path]] = None,
        stream: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a command and capture its output.

        - stream=True echoes combined stdout/stderr to logger.debug line by line
          while it runs (the returned stdout still carries everything).
        """
        pretty = U.pretty_cmd(cmd)
        logger.debug("Running: %s", pretty)

        if stream:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                env=env,
                cwd=str(cwd) if cwd is not None else None,
            )
            assert proc.stdout is not None
            out_lines: List[str] = []
            for line in proc.stdout:
                line = line.rstrip("\n")
                out_lines.append(line)
                logger.debug("%s", line)
            rc = proc.wait(timeout=timeout)
            cp = subprocess.CompletedProcess(cmd, rc, stdout="\n".join(out_lines), stderr="")
            if check and rc != 0:
                raise subprocess.CalledProcessError(rc, cmd, output=cp.stdout, stderr="")
            return cp

        return subprocess.run(
            cmd,
            check=check,
            capture_output=True,
            text=True,
            env=env,
            timeout=timeout,
            cwd=str(cwd) if cwd is not None else None,
        )

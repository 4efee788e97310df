# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/models.py

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

CONTROLLER_TYPES = ("SCSI", "NVMe")

DEFAULT_SCRIPT_URL = (
    "https://raw.githubusercontent.com/Azure/SAP-on-Azure-Scripts-and-Utilities/"
    "main/Azure-NVMe-Utils/Azure-NVMe-Conversion.ps1"
)


def normalize_controller(value: str) -> str:
    """Map any casing of scsi/nvme to the canonical 'SCSI'/'NVMe'."""
    v = (value or "").strip().lower()
    for ct in CONTROLLER_TYPES:
        if ct.lower() == v:
            return ct
    raise ValueError(f"unknown controller type {value!r} (expected one of {', '.join(CONTROLLER_TYPES)})")


@dataclass(frozen=True)
class VMDescriptor:
    name: str
    resource_group: str
    size: str
    power_state: str = "unknown"
    controller_type: Optional[str] = None
    id: str = ""

    @property
    def is_running(self) -> bool:
        return self.power_state == "running"


@dataclass(frozen=True)
class ConversionTask:
    vm: VMDescriptor
    dest_size: str
    controller_type: str
    group_index: int
    started_at: float


@dataclass(frozen=True)
class ConversionResult:
    success: bool
    vm_name: str
    original_size: str
    new_size: str
    duration_s: float
    message: str
    error: Optional[str] = None
    group_index: int = 0
    controller_type: Optional[str] = None
    started_vm: bool = False

    def to_jsonable(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BatchPlan:
    groups: List[List[VMDescriptor]]

    @property
    def vm_count(self) -> int:
        return sum(len(g) for g in self.groups)

    def to_jsonable(self) -> List[List[str]]:
        return [[vm.name for vm in g] for g in self.groups]


@dataclass(frozen=True)
class RunSummary:
    results: List[ConversionResult]
    duration_s: float

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duration_s": round(self.duration_s, 3),
            "results": [r.to_jsonable() for r in self.results],
        }


@dataclass(frozen=True)
class BatchReport:
    """
    Outcome of one convert run. Preview runs carry a plan and no summary.

    fatal is set when a VM vanished mid-run; the summary then covers only the
    groups that ran.
    """
    plan: BatchPlan
    preview: bool
    summary: Optional[RunSummary] = None
    fatal: Optional[Exception] = None

    @property
    def results(self) -> Optional[List[ConversionResult]]:
        return self.summary.results if self.summary is not None else None


@dataclass
class SelectConfig:
    resource_group: str = ""
    vm_name: Optional[str] = None
    source_size: Optional[str] = None
    ignore_running: bool = False


@dataclass
class ScriptConfig:
    url: str = DEFAULT_SCRIPT_URL
    path: Optional[Path] = None  # local copy; skips the download
    cache_dir: Path = Path("./.az2nvme-cache")
    sha256: Optional[str] = None
    refresh: bool = False
    shell: str = "pwsh"
    start_vm: bool = True
    fix_os_settings: bool = True
    ignore_module_check: bool = True


@dataclass
class ConvertConfig:
    dest_size: str = ""
    controller_type: str = "NVMe"
    group_size: int = 3
    settle_s: float = 30.0
    preview: bool = False


@dataclass
class RunConfig:
    subscription: Optional[str] = None
    tenant: Optional[str] = None
    select: SelectConfig = field(default_factory=SelectConfig)
    convert: ConvertConfig = field(default_factory=ConvertConfig)
    script: ScriptConfig = field(default_factory=ScriptConfig)
    output_dir: Path = Path("./out")
    run_tag: Optional[str] = None


@dataclass
class TagConfig:
    resource_groups: List[str] = field(default_factory=list)
    pattern: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    preview: bool = False


@dataclass(frozen=True)
class TagResult:
    resource_group: str
    changed: bool
    applied: bool
    before: Dict[str, str]
    after: Dict[str, str]
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

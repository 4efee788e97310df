# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/__init__.py
"""
az2nvme - Azure VM disk-controller conversion and resource group hygiene

Converts Azure VMs between SCSI and NVMe disk controllers in bounded
parallel groups, and merges tags into resource groups.

Usage as a library:

    from az2nvme import AzCliControlPlane, BatchConverter, TargetResolver
    from az2nvme.azure.models import SelectConfig

    control = AzCliControlPlane()
    vms = TargetResolver(control, logger).resolve(
        SelectConfig(resource_group="rg-sap-prod", source_size="Standard_E4s_v3", ignore_running=True)
    )
    report = BatchConverter(
        control, routine, logger,
        dest_size="Standard_E4bds_v5", controller_type="NVMe", group_size=3,
    ).run(vms)
"""

__version__ = "0.1.0"

from .azure import (
    AzCliControlPlane,
    BatchConverter,
    ConversionResult,
    ResourceGroupTagger,
    TargetResolver,
    VMDescriptor,
)
from .orchestrator import Orchestrator

__all__ = [
    "__version__",
    "AzCliControlPlane",
    "BatchConverter",
    "ConversionResult",
    "Orchestrator",
    "ResourceGroupTagger",
    "TargetResolver",
    "VMDescriptor",
]

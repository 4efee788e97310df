# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/cli/help_texts.py
from __future__ import annotations

# Pure help text for the argparse epilog. Keep it copy/paste runnable.

YAML_EXAMPLE = r"""# az2nvme configuration examples (YAML)
#
# Run:
#   az2nvme --config convert.yaml
# Merge multiple configs (later overrides earlier, CLI overrides both):
#   az2nvme --config base.yaml --config prod.yaml --preview
#
# --------------------------------------------------------------------------------------
# Batch controller conversion
# --------------------------------------------------------------------------------------
cmd: convert
subscription: 00000000-0000-0000-0000-000000000000
resource_group: rg-sap-prod
source_size: Standard_E4s_v3      # every VM of this size in the RG ...
# vm_name: sap-app-01             # ... or exactly one VM
dest_size: Standard_E4bds_v5
controller_type: NVMe             # SCSI | NVMe
ignore_running: true              # skip VMs that are running right now
group_size: 3                     # VMs converted in parallel per group
settle: 30                        # seconds to wait before validating
preview: false
output_dir: ./out
# script_path: ./Azure-NVMe-Conversion.ps1
# script_sha256: <pin the fetched script>

# --------------------------------------------------------------------------------------
# Resource group tagging
# --------------------------------------------------------------------------------------
# cmd: tag
# resource_group: [rg-sap-prod, rg-sap-qa]
# rg_pattern: "rg-sap-*"
# tags:
#   costcenter: "4711"
#   owner: platform-team
"""

FEATURE_SUMMARY = r"""  • convert: SCSI <-> NVMe disk controller conversion, optional resize
  • bounded parallel groups (hard barrier between groups)
  • skip running VMs, preview plans without touching anything
  • per-VM validation (controller match OR size match) and JSON run report
  • tag: merge tags into resource groups (by name or glob pattern)
"""

# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/cli/args/groups.py
from __future__ import annotations

import argparse

from ...azure.models import CONTROLLER_TYPES, DEFAULT_SCRIPT_URL, normalize_controller


def _controller_arg(value: str) -> str:
    try:
        return normalize_controller(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Global config/logging (two-phase parse relies on these)
    # ------------------------------------------------------------------
    from ... import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv, -vvv")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q (warnings), -qq (errors)")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit NDJSON log lines.")


def _add_project_control(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Project control: YAML-driven operation (no subcommands)
    # ------------------------------------------------------------------
    p.add_argument(
        "--cmd",
        dest="cmd",
        default="convert",
        choices=["convert", "tag"],
        help="Operation (normally from YAML `cmd:`).",
    )
    p.add_argument(
        "--preview",
        dest="preview",
        action="store_true",
        help="Plan and print what would happen; change nothing.",
    )


def _add_azure_account(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Azure account")
    g.add_argument("--subscription", dest="subscription", default=None, help="Subscription id or name (az account set).")
    g.add_argument("--tenant", dest="tenant", default=None, help="Expected tenant id; refuse to run elsewhere.")
    g.add_argument(
        "--skip-login-check",
        dest="skip_login_check",
        action="store_true",
        help="Do not verify 'az account show' before running.",
    )


def _add_selection(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Target selection")
    g.add_argument(
        "-g",
        "--resource-group",
        dest="resource_group",
        action="append",
        default=[],
        help="Resource group (convert: exactly one; tag: repeatable).",
    )
    g.add_argument("--vm-name", dest="vm_name", default=None, help="Convert this single VM.")
    g.add_argument(
        "--source-size",
        dest="source_size",
        default=None,
        help="Without --vm-name: convert every VM of this size in the resource group.",
    )
    g.add_argument(
        "--ignore-running",
        dest="ignore_running",
        action="store_true",
        help="Skip VMs that are running (or whose power state cannot be read).",
    )


def _add_conversion(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Conversion")
    g.add_argument("--dest-size", dest="dest_size", default=None, help="VM size after conversion.")
    g.add_argument(
        "--controller-type",
        dest="controller_type",
        type=_controller_arg,
        default="NVMe",
        help=f"Target disk controller type ({' | '.join(CONTROLLER_TYPES)}).",
    )
    g.add_argument("--group-size", dest="group_size", type=int, default=3, help="VMs converted in parallel per group.")
    g.add_argument(
        "--settle",
        dest="settle",
        type=float,
        default=30.0,
        help="Seconds to wait after the conversion before validating.",
    )
    g.add_argument("--output-dir", dest="output_dir", default="./out", help="Where the JSON run report goes.")
    g.add_argument("--run-tag", dest="run_tag", default=None, help="Run identifier (default: timestamp).")
    g.add_argument("--no-report", dest="no_report", action="store_true", help="Do not write the JSON run report.")


def _add_script_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Conversion script")
    g.add_argument("--script-url", dest="script_url", default=DEFAULT_SCRIPT_URL, help="Where to fetch the conversion script.")
    g.add_argument("--script-path", dest="script_path", default=None, help="Use this local script instead of fetching.")
    g.add_argument(
        "--script-cache-dir",
        dest="script_cache_dir",
        default="./.az2nvme-cache",
        help="Cache directory for the fetched script.",
    )
    g.add_argument("--script-sha256", dest="script_sha256", default=None, help="Pin the script by SHA-256.")
    g.add_argument("--refresh-script", dest="refresh_script", action="store_true", help="Re-download even when cached.")
    g.add_argument("--pwsh", dest="pwsh", default="pwsh", help="PowerShell executable.")
    g.add_argument("--no-start-vm", dest="no_start_vm", action="store_true", help="Do not pass -StartVM.")
    g.add_argument(
        "--no-fix-os",
        dest="no_fix_os",
        action="store_true",
        help="Do not pass -FixOperatingSystemSettings.",
    )
    g.add_argument(
        "--azure-module-check",
        dest="azure_module_check",
        action="store_true",
        help="Let the script check Az modules (omit -IgnoreAzureModuleCheck).",
    )


def _add_tagging(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Resource group tagging")
    g.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=[],
        help="Tag to merge, key=value (repeatable or comma-separated).",
    )
    g.add_argument("--rg-pattern", dest="rg_pattern", default=None, help="Also tag every resource group matching this glob.")

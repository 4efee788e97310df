# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# az2nvme/azure/exceptions.py

from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import Az2NvmeError


class AzureError(Az2NvmeError):
    """
    Base exception for Azure operations.

    Inherits exit codes, context tracking, cause chaining and secret
    redaction from Az2NvmeError.
    """
    pass


class AzureCLIError(AzureError):
    """
    Azure CLI command failed.

    Used when 'az' commands fail (non-zero exit, parsing errors, etc.).
    """
    pass


class AzureAuthError(AzureError):
    """
    Azure authentication error.

    Used when 'az account show' fails or the tenant does not match.
    """
    pass


class AzureNotFoundError(AzureCLIError):
    """
    A resource group or VM named by the run does not exist.

    Discovery errors are fatal to the whole run.
    """
    pass


class ConversionScriptError(AzureError):
    """
    The external conversion routine could not be fetched, launched, or exited non-zero.

    Captured per VM into its ConversionResult; never aborts sibling tasks.
    """
    pass


_NOT_FOUND_MARKERS = (
    "resourcenotfound",
    "resourcegroupnotfound",
    "was not found",
    "could not be found",
    "not found",
)


def is_not_found(text: str) -> bool:
    s = (text or "").lower()
    return any(m in s for m in _NOT_FOUND_MARKERS)


def wrap_azure_cli_error(msg: str, exc: Optional[BaseException] = None, code: int = 60, **context: Any) -> AzureCLIError:
    """Wrap Azure CLI errors with context."""
    return AzureCLIError(code=code, msg=msg, cause=exc, context=context or None)


def wrap_azure_auth_error(msg: str, exc: Optional[BaseException] = None, code: int = 61, **context: Any) -> AzureAuthError:
    """Wrap Azure authentication errors with context."""
    return AzureAuthError(code=code, msg=msg, cause=exc, context=context or None)


def wrap_not_found(msg: str, exc: Optional[BaseException] = None, code: int = 63, **context: Any) -> AzureNotFoundError:
    """Wrap discovery (not found) errors with context."""
    return AzureNotFoundError(code=code, msg=msg, cause=exc, context=context or None)


def wrap_script_error(msg: str, exc: Optional[BaseException] = None, code: int = 64, **context: Any) -> ConversionScriptError:
    """Wrap conversion-routine errors with context."""
    return ConversionScriptError(code=code, msg=msg, cause=exc, context=context or None)

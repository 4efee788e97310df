# az2nvme/core/__init__.py
from .exceptions import Az2NvmeError, ConfigError, Fatal
from .logger import Log

__all__ = ["Az2NvmeError", "ConfigError", "Fatal", "Log"]

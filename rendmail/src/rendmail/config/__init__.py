"""Configuration surface for rendmail.

What:
  Re-export the pydantic models and the loader helpers that turn
  ``rendmail.yaml`` plus command-line overrides into :class:`RewriteOptions`.

Interfaces:
  - load_config: Locate and validate ``rendmail.yaml``.
  - build_rewrite_options: Merge CLI overrides onto the loaded file.
  - RendmailConfig / RewriteOptions: Validated models.
  - ConfigLoadError / ConfigFileError: Startup failures (exit status 2).
"""

from .loader import ConfigFileError, ConfigLoadError, build_rewrite_options, load_config
from .schema import RendmailConfig, RewriteOptions

__all__ = [
    "load_config",
    "build_rewrite_options",
    "RendmailConfig",
    "RewriteOptions",
    "ConfigLoadError",
    "ConfigFileError",
]

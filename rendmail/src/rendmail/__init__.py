"""
Module: rendmail.__init__

What:
  Package root for rendmail, a filter that deletes unwanted attachments from
  email messages while leaving every other byte as it was received.

Why:
  Callers import the engine, configuration and helper layers through these
  subpackages; listing them keeps the public namespace explicit.

How:
  Declare ``__all__`` with the subpackages only. Nothing is imported eagerly so
  ``python -m rendmail.cli`` starts quickly inside delivery-agent pipelines.

Interfaces:
  - config: Rewrite options and the optional ``rendmail.yaml`` loader.
  - core: Line reader, media-type policy, header helpers and rewrite engine.
  - utils: JSON diagnostics and backup helpers.
"""

__all__ = [
    "config",
    "core",
    "utils",
]

__version__ = "0.1.0"

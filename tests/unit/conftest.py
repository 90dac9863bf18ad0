"""Fixtures shared by the unit tests.

What:
  Provide a fixed reference time and a factory for :class:`RewriteOptions` so
  each test only spells out the settings it cares about.

Why:
  The deletion placeholder embeds the current time; pinning it keeps expected
  output byte-exact.

Interfaces:
  :data:`FIXED_NOW`, :func:`make_options` (pytest fixture).
"""

from datetime import datetime, timezone

import pytest

from rendmail.config.schema import RewriteOptions

FIXED_NOW = datetime(2021, 2, 18, 21, 54, 42, tzinfo=timezone.utc)


@pytest.fixture
def make_options():
    """Return a callable building :class:`RewriteOptions` pinned to :data:`FIXED_NOW`."""

    def _make(**overrides) -> RewriteOptions:
        overrides.setdefault("now", FIXED_NOW)
        return RewriteOptions(**overrides)

    return _make

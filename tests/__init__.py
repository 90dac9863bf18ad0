"""Test package marker for the rendmail suites.

What:
  Marks ``tests`` as a package so ``tests.unit`` and ``tests.e2e`` resolve
  deterministically under pytest.

Invariants & Safety:
  - Importing ``tests`` has no side effects.
"""

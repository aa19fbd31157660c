"""
Test package. Shared fakes live in ``tests.fakes``.
"""

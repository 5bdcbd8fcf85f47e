"""
Production Python kernels.

These modules are designed to be:
- deterministic (integer-only),
- easy to audit (explicit intermediate variables and rounding direction),
- small surface-area (pure functions, typed frozen results).
"""

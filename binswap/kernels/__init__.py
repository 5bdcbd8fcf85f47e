"""
Kernel layer.

`binswap/kernels/python/` contains the integer-only kernels the engine is built
on: Q128.128 fixed point, single-bin swap steps and per-bin share math.
"""

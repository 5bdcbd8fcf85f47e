"""Scalar aliases shared by the state tables."""

Holder = str  # account identifier
AssetIndex = int  # 0 or 1 within a pair
Amount = int  # non-negative, arbitrary precision

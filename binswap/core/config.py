"""
Pair configuration.

Configuration is fixed at pair creation. It can be built directly, from a plain
mapping, or from a YAML file:

    bin_step: 2
    fee_bps: 30
    max_bin_span: 250000
    price_limit_policy: FAIL
    verify_invariants: true
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from ..errors import InvalidInputError
from ..kernels.python.fixed_point_v1 import BPS_DENOM
from .price_curve import MAX_BIN_STEP

logger = logging.getLogger(__name__)


DEFAULT_BIN_STEP = 2
DEFAULT_FEE_BPS = 30
DEFAULT_MAX_BIN_SPAN = 250_000


class PriceLimitPolicy(Enum):
    """What a swap does when its traversal bound is hit before the request is filled."""

    FAIL = "FAIL"
    PARTIAL_FILL = "PARTIAL_FILL"


@dataclass(frozen=True)
class PairConfig:
    """
    Runtime config for one pair.

    Attributes:
        bin_step: Basis points of price change between adjacent bins
        fee_bps: Swap fee charged on the input side (must be < 10_000)
        max_bin_span: Furthest a single swap may walk from `current_id`
        price_limit_policy: Fail or partially fill when the bound is reached
        verify_invariants: Check ledger/global consistency after every mutation
    """

    bin_step: int = DEFAULT_BIN_STEP
    fee_bps: int = DEFAULT_FEE_BPS
    max_bin_span: int = DEFAULT_MAX_BIN_SPAN
    price_limit_policy: PriceLimitPolicy = PriceLimitPolicy.FAIL
    verify_invariants: bool = True

    def __post_init__(self) -> None:
        for name, v in (
            ("bin_step", self.bin_step),
            ("fee_bps", self.fee_bps),
            ("max_bin_span", self.max_bin_span),
        ):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
        if not (1 <= self.bin_step <= MAX_BIN_STEP):
            raise ValueError(f"bin_step must be in [1, {MAX_BIN_STEP}]: {self.bin_step}")
        if not (0 <= self.fee_bps < BPS_DENOM):
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {self.fee_bps}")
        if self.max_bin_span <= 0:
            raise ValueError(f"max_bin_span must be positive: {self.max_bin_span}")
        if not isinstance(self.price_limit_policy, PriceLimitPolicy):
            raise TypeError("price_limit_policy must be a PriceLimitPolicy")
        if not isinstance(self.verify_invariants, bool):
            raise TypeError("verify_invariants must be a bool")

    def to_dict(self) -> dict[str, Any]:
        return {
            "bin_step": self.bin_step,
            "fee_bps": self.fee_bps,
            "max_bin_span": self.max_bin_span,
            "price_limit_policy": self.price_limit_policy.value,
            "verify_invariants": self.verify_invariants,
        }


_FIELD_NAMES = frozenset(f.name for f in fields(PairConfig))


def pair_config_from_mapping(obj: Mapping[str, Any]) -> PairConfig:
    """Validate a plain mapping (e.g. parsed YAML/JSON) into a PairConfig."""
    if not isinstance(obj, Mapping):
        raise InvalidInputError("pair config must be a mapping")
    unknown = sorted(set(obj) - _FIELD_NAMES)
    if unknown:
        raise InvalidInputError(f"unknown pair config keys: {', '.join(map(str, unknown))}")

    kwargs = dict(obj)
    policy = kwargs.get("price_limit_policy")
    if policy is not None and not isinstance(policy, PriceLimitPolicy):
        try:
            kwargs["price_limit_policy"] = PriceLimitPolicy(str(policy).strip().upper())
        except ValueError as exc:
            raise InvalidInputError(f"invalid price_limit_policy: {policy!r}") from exc

    try:
        return PairConfig(**kwargs)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"invalid pair config: {exc}") from exc


def load_pair_config(path: Union[str, Path]) -> PairConfig:
    """Load a PairConfig from a YAML file. An empty file yields the defaults."""
    path = Path(path)
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    if obj is None:
        obj = {}
    config = pair_config_from_mapping(obj)
    logger.debug("loaded pair config from %s: %s", path, config)
    return config

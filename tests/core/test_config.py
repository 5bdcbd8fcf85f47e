# [TESTER] v1

from __future__ import annotations

from pathlib import Path

import pytest

from binswap.core.config import (
    DEFAULT_FEE_BPS,
    PairConfig,
    PriceLimitPolicy,
    load_pair_config,
    pair_config_from_mapping,
)
from binswap.errors import InvalidInputError


def test_defaults() -> None:
    c = PairConfig()
    assert c.bin_step == 2
    assert c.fee_bps == DEFAULT_FEE_BPS == 30
    assert c.price_limit_policy is PriceLimitPolicy.FAIL
    assert c.verify_invariants is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"bin_step": 0},
        {"fee_bps": 10_000},
        {"fee_bps": -1},
        {"max_bin_span": 0},
    ],
)
def test_rejects_out_of_range(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        PairConfig(**kwargs)


def test_rejects_wrong_types() -> None:
    with pytest.raises(TypeError):
        PairConfig(bin_step=True)
    with pytest.raises(TypeError):
        PairConfig(price_limit_policy="FAIL")  # type: ignore[arg-type]


def test_mapping_round_trip() -> None:
    c = PairConfig(bin_step=25, fee_bps=5, price_limit_policy=PriceLimitPolicy.PARTIAL_FILL)
    assert pair_config_from_mapping(c.to_dict()) == c


def test_mapping_parses_policy_case_insensitively() -> None:
    c = pair_config_from_mapping({"price_limit_policy": "partial_fill"})
    assert c.price_limit_policy is PriceLimitPolicy.PARTIAL_FILL


def test_mapping_rejects_unknown_keys_and_bad_values() -> None:
    with pytest.raises(InvalidInputError, match="unknown pair config keys: tick_spacing"):
        pair_config_from_mapping({"tick_spacing": 1})
    with pytest.raises(InvalidInputError, match="price_limit_policy"):
        pair_config_from_mapping({"price_limit_policy": "maybe"})
    with pytest.raises(InvalidInputError, match="invalid pair config"):
        pair_config_from_mapping({"fee_bps": 20_000})


def test_load_yaml(tmp_path: Path) -> None:
    path = tmp_path / "pair.yaml"
    path.write_text("bin_step: 10\nfee_bps: 25\nprice_limit_policy: PARTIAL_FILL\n", encoding="utf-8")
    c = load_pair_config(path)
    assert (c.bin_step, c.fee_bps) == (10, 25)
    assert c.price_limit_policy is PriceLimitPolicy.PARTIAL_FILL


def test_load_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_pair_config(path) == PairConfig()


def test_load_non_mapping_yaml(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(InvalidInputError, match="mapping"):
        load_pair_config(path)

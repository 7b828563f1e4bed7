from __future__ import annotations

import logging
from typing import Dict, Hashable, List, Mapping, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


def round_ratio(numerator: int, denominator: int) -> int:
    """Nearest integer to ``numerator / denominator``, halves rounded away from zero.

    Both arguments are non-negative integers, so the division is exact.
    """
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (2 * numerator + denominator) // (2 * denominator)


def proportional_shares(total: int, weights: Mapping[K, int]) -> Dict[K, int]:
    weight_sum = sum(weights.values())
    return {key: round_ratio(weight * total, weight_sum) for key, weight in weights.items()}


def correct_rounding(shares: Dict[K, int], target: int, ranking: Mapping[K, int]) -> int:
    """Move ``shares`` by one unit at a time until they sum to ``target``.

    Units are taken from (or given to) keys in order of descending ``ranking``,
    ties broken by ascending key. Returns the discrepancy that was corrected.
    """
    diff = sum(shares.values()) - target
    if not diff or not shares:
        return diff
    order: List[K] = sorted(shares, key=lambda key: (-ranking[key], key))
    step = -1 if diff > 0 else 1
    remaining = diff
    idx = 0
    while remaining:
        key = order[idx % len(order)]
        shares[key] += step
        remaining += step
        logger.debug("Rounding correction: %+d for %s", step, key)
        idx += 1
    return diff

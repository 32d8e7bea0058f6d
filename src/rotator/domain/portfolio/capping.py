from __future__ import annotations

from typing import List, Sequence

MAX_CAP_PASSES = 10


def apply_max_weight_cap(weights: Sequence[float], max_weight: float) -> List[float]:
    """
    Clamp every weight to `max_weight` and spread the excess evenly over the
    entries still below the cap, for at most MAX_CAP_PASSES passes.

    When nothing is left to receive the excess every entry sits at the cap
    and the vector is returned as is: its sum is below 1 and the remainder
    stays in cash. Otherwise the result is renormalised to sum to 1.
    """
    result = [float(w) for w in weights]
    if not result or max_weight >= 1.0:
        return result

    for _ in range(MAX_CAP_PASSES):
        excess = 0.0
        capped: set[int] = set()
        for i, w in enumerate(result):
            if w > max_weight:
                excess += w - max_weight
                result[i] = max_weight
                capped.add(i)
        if excess <= 0:
            break

        uncapped = [i for i, w in enumerate(result) if w < max_weight and i not in capped]
        if not uncapped:
            return result
        share = excess / len(uncapped)
        for i in uncapped:
            result[i] += share

    total = sum(result)
    if total > 0:
        result = [w / total for w in result]
    return result

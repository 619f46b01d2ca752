###############################################################################
# Aspect ratio policy
#
# Holds an optional target aspect ratio (larger / smaller dimension) and an
# absolute tolerance. Without a target ratio the policy reports UNSET and
# callers compare against a reference resolution instead.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Iterable, List, Optional

from .resolution import Resolution

logger = logging.getLogger(__name__)

# absorbs float rounding in |candidate - ratio| so that ratio + tolerance matches
_EPS = 1e-9


class AspectResult(Enum):
    MATCH = "match"
    OUT_OF_BOUNDS = "out_of_bounds"
    UNSET = "unset"


class AspectRatioPolicy:
    """
    Target aspect ratio with tolerance.

    ratio:     larger dimension divided by smaller dimension, e.g. 16/9.
               None disables tolerance based filtering.
    tolerance: absolute allowed delta between candidate ratio and ratio.
    """

    __slots__ = ("_ratio", "_tolerance")

    def __init__(self, ratio: Optional[float] = None, tolerance: float = 0.0) -> None:
        if ratio is not None:
            ratio = float(ratio)
            if not math.isfinite(ratio) or ratio < 1.0:
                raise ValueError("Aspect ratio must be larger or equal to 1")
        tolerance = float(tolerance)
        if not math.isfinite(tolerance) or tolerance < 0.0:
            raise ValueError("Aspect ratio tolerance cannot be negative")
        self._ratio = ratio
        self._tolerance = tolerance

    @property
    def ratio(self) -> Optional[float]:
        return self._ratio

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @property
    def is_set(self) -> bool:
        return self._ratio is not None

    def classify(self, candidate_ratio: float) -> AspectResult:
        if self._ratio is None:
            return AspectResult.UNSET
        if abs(float(candidate_ratio) - self._ratio) <= self._tolerance + _EPS:
            return AspectResult.MATCH
        return AspectResult.OUT_OF_BOUNDS

    def accepts(self, size: Resolution, reference: Resolution) -> bool:
        """
        Aspect check for one candidate size.

        Tolerance based when a ratio is configured, otherwise exact
        cross multiplied equality with the reference size.
        """
        result = self.classify(size.ratio)
        if result is AspectResult.UNSET:
            return size.same_aspect(reference)
        return result is AspectResult.MATCH

    def __repr__(self) -> str:
        return f"AspectRatioPolicy(ratio={self._ratio!r}, tolerance={self._tolerance!r})"


def filter_aspect(sizes: Iterable[Resolution], policy: AspectRatioPolicy) -> List[Resolution]:
    """Keep the sizes matching the policy ratio, preserving input order.

    Returns all sizes when no ratio is configured. When a ratio is configured
    but nothing matches, the unfiltered list is returned so a capture size can
    still be chosen.
    """
    sizes = list(sizes)
    if not policy.is_set:
        return sizes
    matching = [s for s in sizes if policy.classify(s.ratio) is AspectResult.MATCH]
    if not matching and sizes:
        logger.warning(
            "No supported size matches aspect ratio %.4f +/- %.4f; keeping all %d sizes",
            policy.ratio, policy.tolerance, len(sizes),
        )
        return sizes
    return matching


__all__ = ["AspectResult", "AspectRatioPolicy", "filter_aspect"]

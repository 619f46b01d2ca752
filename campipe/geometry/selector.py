###############################################################################
# Size selection
#
# Picks the preview size from the sizes a camera supports and the largest
# size for still capture.
#
# Preview policy:
#   the smallest size that covers the desired viewport, stays within the
#   maximum bounds and has the right aspect ratio. If none covers the
#   viewport, the largest size within bounds with the right aspect ratio.
#   If nothing qualifies, the first supported size (logged).
#
# Ties on area resolve to the first encountered size.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .aspect import AspectRatioPolicy
from .resolution import Resolution, area_of

logger = logging.getLogger(__name__)


def choose_optimal_size(
    choices: Sequence[Resolution],
    desired_width: int,
    desired_height: int,
    max_width: int,
    max_height: int,
    aspect_reference: Resolution,
    policy: Optional[AspectRatioPolicy] = None,
) -> Resolution:
    """
    Choose the preview size.

    choices:          sizes supported by the camera, in reporting order
    desired_width/height: viewport size relative to the sensor orientation
    max_width/height: largest size that may be chosen
    aspect_reference: size whose aspect ratio is required when the policy
                      has no ratio configured
    policy:           aspect ratio policy, None is the same as an unset policy

    Always returns a member of choices.
    """
    choices = list(choices)
    if not choices:
        raise ValueError("No candidate sizes to choose from")
    if policy is None:
        policy = AspectRatioPolicy()

    # supported sizes at least as big as the viewport
    big_enough = []
    # supported sizes smaller than the viewport
    not_big_enough = []

    for option in choices:
        if option.fits_within(max_width, max_height) and policy.accepts(option, aspect_reference):
            if option.covers(desired_width, desired_height):
                big_enough.append(option)
            else:
                not_big_enough.append(option)

    # min()/max() keep the first of equal keys
    if big_enough:
        return min(big_enough, key=area_of)
    if not_big_enough:
        return max(not_big_enough, key=area_of)

    default_size = choices[0]
    logger.error("Couldn't find any suitable preview size, returning default size -> %s", default_size)
    return default_size


def choose_largest_size(choices: Sequence[Resolution]) -> Resolution:
    """Largest area size, used for still capture."""
    choices = list(choices)
    if not choices:
        raise ValueError("No candidate sizes to choose from")
    return max(choices, key=area_of)


__all__ = ["choose_optimal_size", "choose_largest_size"]

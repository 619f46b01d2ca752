###############################################################################
# Resolution
#
# Immutable width/height pair as reported by the camera hardware.
# Ordering helpers compare by area.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Resolution:
    """Width and height in pixels, both strictly positive."""

    width: int
    height: int

    def __post_init__(self) -> None:
        try:
            w, h = int(self.width), int(self.height)
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"Resolution needs integer dimensions, got {self.width!r}x{self.height!r}")
        # 1280.0 from cv2 is fine, 1280.7 or "1280" is not
        if w != self.width or h != self.height:
            raise ValueError(f"Resolution needs integer dimensions, got {self.width!r}x{self.height!r}")
        if w <= 0 or h <= 0:
            raise ValueError(f"Resolution dimensions must be > 0, got {w}x{h}")
        # normalize numpy ints / floats such as 1280.0 coming from cv2 properties
        object.__setattr__(self, "width", w)
        object.__setattr__(self, "height", h)

    @classmethod
    def from_tuple(cls, res) -> "Resolution":
        """Build from a (width, height) tuple as used in configs dicts."""
        if isinstance(res, Resolution):
            return res
        if not isinstance(res, (list, tuple)) or len(res) != 2:
            raise ValueError(f"Expected (width, height), got {res!r}")
        return cls(res[0], res[1])

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def ratio(self) -> float:
        """Larger dimension over smaller dimension, always >= 1."""
        return max(self.width, self.height) / min(self.width, self.height)

    def swapped(self) -> "Resolution":
        return Resolution(self.height, self.width)

    def same_aspect(self, other: "Resolution") -> bool:
        """Exact aspect equality by cross multiplication (no floating point)."""
        return self.height * other.width == self.width * other.height

    def fits_within(self, max_width: int, max_height: int) -> bool:
        return self.width <= max_width and self.height <= max_height

    def covers(self, width: int, height: int) -> bool:
        return self.width >= width and self.height >= height

    def as_tuple(self) -> tuple[int, int]:
        return (self.width, self.height)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


def area_of(size: Resolution) -> int:
    """Sort key comparing resolutions by area."""
    return size.area


__all__ = ["Resolution", "area_of"]

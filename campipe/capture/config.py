###############################################################################
# Capture session configuration
#
# Normalizes and validates the configs dictionary (see
# campipe/configs/default_configs.py). Invalid values raise ValueError when
# the configuration is built, never later.
#
# 2026 Initial release
###############################################################################

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Optional

from ..geometry.aspect import AspectRatioPolicy
from ..geometry.resolution import Resolution

MAX_PREVIEW_WIDTH = 1920
MAX_PREVIEW_HEIGHT = 1080
JPEG_QUALITY = 100
LOCK_ACQUIRE_TIMEOUT = 2.5  # seconds


@dataclass(frozen=True)
class CaptureConfig:
    aspect_ratio: Optional[float] = None
    aspect_ratio_offset: float = 0.0
    image_path: Optional[str] = None
    storage_dir: str = field(default_factory=os.getcwd)
    camera_index: int = 0
    jpeg_quality: int = JPEG_QUALITY
    max_preview_res: Resolution = Resolution(MAX_PREVIEW_WIDTH, MAX_PREVIEW_HEIGHT)
    lock_timeout: float = LOCK_ACQUIRE_TIMEOUT
    log_queue_size: int = 32

    def __post_init__(self) -> None:
        if self.aspect_ratio is not None and not 1.0 <= float(self.aspect_ratio) < math.inf:
            raise ValueError("AspectRatio must be larger or equal to 1")
        if not 0.0 <= float(self.aspect_ratio_offset) < math.inf:
            raise ValueError("Offset cannot be a negative.")
        if self.image_path is not None and not str(self.image_path).strip():
            raise ValueError("ImagePath cannot be an empty string")
        if int(self.camera_index) < 0:
            raise ValueError("camera_index cannot be negative")
        if not 1 <= int(self.jpeg_quality) <= 100:
            raise ValueError("jpeg_quality must be in range 1..100")
        if float(self.lock_timeout) <= 0.0:
            raise ValueError("lock_timeout must be > 0")
        if int(self.log_queue_size) < 1:
            raise ValueError("log_queue_size must be >= 1")

    @classmethod
    def from_configs(cls, configs: Optional[dict] = None) -> "CaptureConfig":
        """Build from a configs dict; missing keys take their defaults."""
        configs = configs or {}
        kwargs = {}
        if configs.get("aspect_ratio") is not None:
            kwargs["aspect_ratio"] = float(configs["aspect_ratio"])
        if "aspect_ratio_offset" in configs: kwargs["aspect_ratio_offset"] = float(configs["aspect_ratio_offset"])
        if configs.get("image_path") is not None:
            kwargs["image_path"] = str(configs["image_path"])
        if configs.get("storage_dir"):       kwargs["storage_dir"]     = str(configs["storage_dir"])
        if "camera_index" in configs:        kwargs["camera_index"]    = int(configs["camera_index"])
        if "jpeg_quality" in configs:        kwargs["jpeg_quality"]    = int(configs["jpeg_quality"])
        if "max_preview_res" in configs:     kwargs["max_preview_res"] = Resolution.from_tuple(configs["max_preview_res"])
        if "lock_timeout" in configs:        kwargs["lock_timeout"]    = float(configs["lock_timeout"])
        if "log_queue_size" in configs:      kwargs["log_queue_size"]  = int(configs["log_queue_size"])
        return cls(**kwargs)

    def aspect_policy(self) -> AspectRatioPolicy:
        return AspectRatioPolicy(self.aspect_ratio, self.aspect_ratio_offset)


__all__ = ["CaptureConfig", "MAX_PREVIEW_WIDTH", "MAX_PREVIEW_HEIGHT", "JPEG_QUALITY", "LOCK_ACQUIRE_TIMEOUT"]

from .resolution import Resolution, area_of
from .aspect import AspectResult, AspectRatioPolicy, filter_aspect
from .orientation import Rotation, Facing, parse_rotation, to_rotation, resolve_rotation_degrees
from .selector import choose_optimal_size, choose_largest_size
from .transform import compute_transform, apply_transform, map_point

__all__ = [
    "Resolution",
    "area_of",
    "AspectResult",
    "AspectRatioPolicy",
    "filter_aspect",
    "Rotation",
    "Facing",
    "parse_rotation",
    "to_rotation",
    "resolve_rotation_degrees",
    "choose_optimal_size",
    "choose_largest_size",
    "compute_transform",
    "apply_transform",
    "map_point",
]

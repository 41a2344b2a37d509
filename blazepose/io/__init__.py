"""
IO module - Image features, loading and result saving

Provides unified interfaces for:
- ImageFeature: image buffer with normalization and aspect handling
- Image loading with error handling
- Pose CSV reading/writing with dataclasses, JSON export
"""

from .image import AspectMode, ImageFeature, ImageLike, single_image_input
from .data_loader import ImageLoader
from .csv_handler import (
    CSVWriter,
    CSVReader,
    PoseRow,
    write_poses_json,
)

__all__ = [
    "AspectMode",
    "ImageFeature",
    "ImageLike",
    "single_image_input",
    "ImageLoader",
    "CSVWriter",
    "CSVReader",
    "PoseRow",
    "write_poses_json",
]

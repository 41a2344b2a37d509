"""
ROI module - Region of interest geometry and extraction

Provides:
- Region and AffineTransform types
- ROI -> image transform construction
- Rotated crop + resample of a detected subject
"""

from .region import (
    Region,
    AffineTransform,
    normalize_radians,
    region_to_image_transform,
    region_corners,
)
from .extractor import extract_roi, ROIExtractor

__all__ = [
    "Region",
    "AffineTransform",
    "normalize_radians",
    "region_to_image_transform",
    "region_corners",
    "extract_roi",
    "ROIExtractor",
]

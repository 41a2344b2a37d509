"""
Detection module - Person detection for the BlazePose pipeline

Provides:
- BlazePoseDetector: SSD pose detector with ROI computation
- SSD anchor generation and box decoding
- IoU and weighted non-maximum suppression
"""

from .detector import BlazePoseDetector, Detection, detection_region
from .anchors import generate_anchors, decode_boxes
from .bbox_utils import (
    iou_batch,
    weighted_non_max_suppression,
)

__all__ = [
    "BlazePoseDetector",
    "Detection",
    "detection_region",
    "generate_anchors",
    "decode_boxes",
    "iou_batch",
    "weighted_non_max_suppression",
]

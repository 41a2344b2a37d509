"""
Pose module - Landmark prediction and keypoint transforms

Provides:
- BlazePosePredictor: landmark model wrapper
- Keypoints / Keypoints3D views and the Pose value
- Keypoint transform functions
"""

from .keypoints import Keypoints, Keypoints3D, Pose
from .predictor import BlazePosePredictor, RawLandmarks
from .keypoint_utils import (
    sigmoid,
    validate_raw_landmarks,
    transform_keypoint,
    transform_keypoints,
    transform_keypoint_3d,
    transform_keypoints_3d,
    keypoints_to_pixels,
)

__all__ = [
    "Keypoints",
    "Keypoints3D",
    "Pose",
    "BlazePosePredictor",
    "RawLandmarks",
    "sigmoid",
    "validate_raw_landmarks",
    "transform_keypoint",
    "transform_keypoints",
    "transform_keypoint_3d",
    "transform_keypoints_3d",
    "keypoints_to_pixels",
]

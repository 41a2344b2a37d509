"""
Keypoint utilities for the BlazePose landmark model

Provides:
- Raw landmark validation
- Model space -> normalized image space transform (2D)
- Raw -> hip-centered world space transform (3D)
- Normalized image space -> pixel conversion

Raw 2D landmarks are flat float32 arrays with stride 5
(x, y, depth, visibility logit, presence logit), x and y in predictor input
pixels with the origin top-left. Raw 3D landmarks have stride 3.
"""

from typing import Tuple

import numpy as np
from scipy.special import expit

from ..core.constants import (
    KEYPOINT_3D_STRIDE,
    KEYPOINT_STRIDE,
    NUM_KEYPOINTS,
)
from ..core.exceptions import CorruptModelOutput
from ..roi.region import AffineTransform


def sigmoid(x):
    """Logistic function, scalar or array"""
    return expit(x)


def validate_raw_landmarks(raw: np.ndarray, stride: int, name: str = "landmarks") -> np.ndarray:
    """
    Check a raw landmark array holds exactly 33 entries of ``stride`` values

    Returns:
        The array flattened to 1-D float32 (no copy when already so)

    Raises:
        CorruptModelOutput: On any other length
    """
    flat = np.asarray(raw, dtype=np.float32).reshape(-1)
    expected = NUM_KEYPOINTS * stride
    if flat.size != expected:
        raise CorruptModelOutput(
            f"Expected {expected} {name} values ({NUM_KEYPOINTS} x {stride}), got {flat.size}"
        )
    return flat


def transform_keypoint(
    raw: np.ndarray,
    index: int,
    input_size: Tuple[int, int],
    transform: AffineTransform
) -> Tuple[float, float, float, float]:
    """
    Transform a single raw keypoint into normalized image space

    Args:
        raw: Flat raw 2D landmarks (33 x 5)
        index: Keypoint index in [0, 33)
        input_size: (width, height) of the predictor input
        transform: ROI -> normalized image transform

    Returns:
        (x, y, depth, visibility)
    """
    if not 0 <= index < NUM_KEYPOINTS:
        raise IndexError(f"Keypoint index {index} out of range")
    offset = index * KEYPOINT_STRIDE
    rx, ry, depth, logit = (float(v) for v in raw[offset:offset + 4])

    input_width, input_height = input_size
    x, y = transform.apply_point(rx / input_width, 1.0 - ry / input_height)
    return x, y, transform.depth_scale() * depth, float(sigmoid(logit))


def transform_keypoints(
    raw: np.ndarray,
    input_size: Tuple[int, int],
    transform: AffineTransform
) -> np.ndarray:
    """
    Transform all raw keypoints into normalized image space

    Args:
        raw: Raw 2D landmarks (33 x 5 values)
        input_size: (width, height) of the predictor input
        transform: ROI -> normalized image transform

    Returns:
        (33, 4) float64 array of (x, y, depth, visibility)

    Raises:
        CorruptModelOutput: If raw does not hold 33 x 5 values

    Example:
        >>> kps = transform_keypoints(landmarks.keypoints, (256, 256), detection.transform)
        >>> x, y, depth, visibility = kps[KeypointIndex.NOSE]
    """
    rows = validate_raw_landmarks(raw, KEYPOINT_STRIDE).reshape(NUM_KEYPOINTS, KEYPOINT_STRIDE)
    rows = rows.astype(np.float64)

    input_width, input_height = input_size
    uv = np.stack([rows[:, 0] / input_width, 1.0 - rows[:, 1] / input_height], axis=1)

    result = np.empty((NUM_KEYPOINTS, 4), dtype=np.float64)
    result[:, :2] = transform.apply(uv)
    result[:, 2] = transform.depth_scale() * rows[:, 2]
    result[:, 3] = sigmoid(rows[:, 3])
    return result


def transform_keypoint_3d(raw: np.ndarray, index: int) -> Tuple[float, float, float]:
    """Single raw 3D keypoint -> (x, -y, z)"""
    if not 0 <= index < NUM_KEYPOINTS:
        raise IndexError(f"Keypoint index {index} out of range")
    offset = index * KEYPOINT_3D_STRIDE
    x, y, z = (float(v) for v in raw[offset:offset + 3])
    return x, -y, z


def transform_keypoints_3d(raw: np.ndarray) -> np.ndarray:
    """
    Raw 3D landmarks -> hip-centered world space

    Returns:
        (33, 3) float64 array of (x, -y, z)

    Raises:
        CorruptModelOutput: If raw does not hold 33 x 3 values
    """
    rows = validate_raw_landmarks(raw, KEYPOINT_3D_STRIDE, "3D landmarks")
    rows = rows.reshape(NUM_KEYPOINTS, KEYPOINT_3D_STRIDE).astype(np.float64)
    rows[:, 1] = -rows[:, 1]
    return rows


def keypoints_to_pixels(keypoints: np.ndarray, img_width: int, img_height: int) -> np.ndarray:
    """
    Normalized image coordinates (origin bottom-left) -> pixel coordinates

    Args:
        keypoints: (N, >=2) array, x and y in the first two columns
        img_width: Image width in pixels
        img_height: Image height in pixels

    Returns:
        (N, 2) float array of (x_px, y_px), origin top-left
    """
    keypoints = np.asarray(keypoints, dtype=np.float64)
    pixels = np.empty((keypoints.shape[0], 2), dtype=np.float64)
    pixels[:, 0] = keypoints[:, 0] * img_width
    pixels[:, 1] = (1.0 - keypoints[:, 1]) * img_height
    return pixels

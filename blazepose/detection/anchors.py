"""
SSD anchors and box decoding for the BlazePose person detector

Anchors follow the MediaPipe SsdAnchorsCalculator; with the default options
the 224x224 detector has 2254 of them.
"""

import math
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ..core.constants import (
    DETECTOR_ANCHOR_OPTIONS,
    DETECTOR_NUM_COORDS,
    DETECTOR_NUM_KEYPOINTS,
)
from ..core.exceptions import CorruptModelOutput


def _calc_scale(min_scale: float, max_scale: float, stride_index: int, num_strides: int) -> float:
    if num_strides == 1:
        return (min_scale + max_scale) * 0.5
    return min_scale + (max_scale - min_scale) * stride_index / (num_strides - 1.0)


def generate_anchors(options: Optional[Dict[str, Any]] = None) -> np.ndarray:
    """
    Generate SSD anchors

    Args:
        options: Anchor options (defaults to DETECTOR_ANCHOR_OPTIONS)

    Returns:
        (N, 4) float32 array of [x_center, y_center, width, height],
        normalized over the detector input, origin top-left

    Example:
        >>> anchors = generate_anchors()
        >>> anchors.shape
        (2254, 4)
    """
    options = options or DETECTOR_ANCHOR_OPTIONS
    strides = options['strides']
    num_strides = len(strides)
    if options['num_layers'] != num_strides:
        raise ValueError(
            f"num_layers ({options['num_layers']}) must match the number of strides ({num_strides})"
        )

    anchors = []
    layer_id = 0
    while layer_id < num_strides:
        anchor_heights, anchor_widths = [], []
        aspect_ratios, scales = [], []

        # Layers sharing a stride are merged into one feature map
        last_same = layer_id
        while last_same < num_strides and strides[last_same] == strides[layer_id]:
            scale = _calc_scale(options['min_scale'], options['max_scale'], last_same, num_strides)
            if last_same == 0 and options['reduce_boxes_in_lowest_layer']:
                aspect_ratios.extend([1.0, 2.0, 0.5])
                scales.extend([0.1, scale, scale])
            else:
                for ratio in options['aspect_ratios']:
                    aspect_ratios.append(ratio)
                    scales.append(scale)
                if options['interpolated_scale_aspect_ratio'] > 0.0:
                    if last_same == num_strides - 1:
                        scale_next = 1.0
                    else:
                        scale_next = _calc_scale(
                            options['min_scale'], options['max_scale'], last_same + 1, num_strides
                        )
                    scales.append(math.sqrt(scale * scale_next))
                    aspect_ratios.append(options['interpolated_scale_aspect_ratio'])
            last_same += 1

        for ratio, scale in zip(aspect_ratios, scales):
            root = math.sqrt(ratio)
            anchor_heights.append(scale / root)
            anchor_widths.append(scale * root)

        stride = strides[layer_id]
        fm_height = int(math.ceil(options['input_size_height'] / stride))
        fm_width = int(math.ceil(options['input_size_width'] / stride))

        for y in range(fm_height):
            for x in range(fm_width):
                x_center = (x + options['anchor_offset_x']) / fm_width
                y_center = (y + options['anchor_offset_y']) / fm_height
                for anchor_w, anchor_h in zip(anchor_widths, anchor_heights):
                    if options['fixed_anchor_size']:
                        anchors.append([x_center, y_center, 1.0, 1.0])
                    else:
                        anchors.append([x_center, y_center, anchor_w, anchor_h])

        layer_id = last_same

    return np.asarray(anchors, dtype=np.float32)


def decode_boxes(
    raw_boxes: np.ndarray,
    anchors: np.ndarray,
    input_size: Tuple[int, int]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Decode raw detector regressors relative to their anchors

    Each row of ``raw_boxes`` holds the box center offset, box size and the
    four keypoint offsets, all in input pixels.

    Args:
        raw_boxes: (N, 12) raw regressors (any shape that flattens to it)
        anchors: (N, 4) anchors from generate_anchors
        input_size: (width, height) of the detector input

    Returns:
        (boxes, keypoints): (N, 4) [xmin, ymin, xmax, ymax] and
        (N, 4, 2) keypoints, normalized over the input, origin top-left

    Raises:
        CorruptModelOutput: If the regressor count does not match the anchors
    """
    num_anchors = anchors.shape[0]
    raw = np.asarray(raw_boxes, dtype=np.float32).reshape(-1)
    if raw.size != num_anchors * DETECTOR_NUM_COORDS:
        raise CorruptModelOutput(
            f"Expected {num_anchors}x{DETECTOR_NUM_COORDS} detector regressors, got {raw.size} values"
        )

    width, height = input_size
    points = raw.reshape(num_anchors, DETECTOR_NUM_COORDS // 2, 2).copy()
    points[..., 0] /= width
    points[..., 1] /= height

    anchor_xy = anchors[:, np.newaxis, :2]
    anchor_wh = anchors[:, np.newaxis, 2:4]

    center = points[:, 0:1] * anchor_wh + anchor_xy
    size = points[:, 1:2] * anchor_wh
    keypoints = points[:, 2:2 + DETECTOR_NUM_KEYPOINTS] * anchor_wh + anchor_xy

    boxes = np.concatenate([center - size / 2.0, center + size / 2.0], axis=1)
    return boxes.reshape(num_anchors, 4), keypoints

"""
Bounding box utilities for detector post-processing

Provides:
- Batch IoU computation
- Weighted non-maximum suppression

Boxes are [x1, y1, x2, y2] in any consistent unit.
"""

from typing import Optional, Tuple

import numpy as np


def iou_batch(bboxes1: np.ndarray, bboxes2: np.ndarray) -> np.ndarray:
    """
    Compute pairwise IoU between two sets of bounding boxes (vectorized)

    Args:
        bboxes1: Array of shape (N, 4) with [x1, y1, x2, y2]
        bboxes2: Array of shape (M, 4) with [x1, y1, x2, y2]

    Returns:
        IoU matrix of shape (N, M)
    """
    bboxes2 = np.expand_dims(np.asarray(bboxes2, dtype=np.float64), 0)
    bboxes1 = np.expand_dims(np.asarray(bboxes1, dtype=np.float64), 1)

    xx1 = np.maximum(bboxes1[..., 0], bboxes2[..., 0])
    yy1 = np.maximum(bboxes1[..., 1], bboxes2[..., 1])
    xx2 = np.minimum(bboxes1[..., 2], bboxes2[..., 2])
    yy2 = np.minimum(bboxes1[..., 3], bboxes2[..., 3])

    w = np.maximum(0., xx2 - xx1)
    h = np.maximum(0., yy2 - yy1)
    wh = w * h

    area1 = (bboxes1[..., 2] - bboxes1[..., 0]) * (bboxes1[..., 3] - bboxes1[..., 1])
    area2 = (bboxes2[..., 2] - bboxes2[..., 0]) * (bboxes2[..., 3] - bboxes2[..., 1])
    union_area = area1 + area2 - wh

    with np.errstate(divide="ignore", invalid="ignore"):
        iou_matrix = np.where(union_area > 0, wh / union_area, 0.0)

    return iou_matrix.astype(np.float32)


def _score_order(scores: np.ndarray) -> np.ndarray:
    # Descending, ties keep input order
    return np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")


def weighted_non_max_suppression(
    boxes: np.ndarray,
    scores: np.ndarray,
    iou_threshold: float,
    keypoints: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
    """
    Weighted NMS (MediaPipe NonMaxSuppressionCalculator, WEIGHTED mode)

    The highest-scoring remaining box absorbs every box overlapping it by
    more than ``iou_threshold``: its coordinates (and keypoints) become the
    score-weighted mean of the cluster, its score is kept.

    Args:
        boxes: (N, 4) boxes [x1, y1, x2, y2]
        scores: (N,) scores
        iou_threshold: Minimum IoU for a box to join a cluster
        keypoints: Optional (N, K, 2) keypoints averaged with the boxes

    Returns:
        (boxes, scores, keypoints) of the merged detections, by descending
        score (ties keep input order)

    Example:
        >>> boxes = np.array([[0, 0, 1, 1], [0, 0, 1, 1.1], [2, 2, 3, 3]])
        >>> merged, merged_scores, _ = weighted_non_max_suppression(
        ...     boxes, np.array([0.9, 0.8, 0.7]), 0.3)
        >>> len(merged)
        2
    """
    boxes = np.asarray(boxes, dtype=np.float64)
    scores = np.asarray(scores, dtype=np.float64)

    out_boxes, out_scores, out_keypoints = [], [], []
    remaining = _score_order(scores)

    while remaining.size > 0:
        best = remaining[0]
        overlaps = iou_batch(boxes[best:best + 1], boxes[remaining])[0]
        # The best box always joins its own cluster
        in_cluster = overlaps > iou_threshold
        in_cluster[0] = True

        cluster = remaining[in_cluster]
        weights = scores[cluster]
        total = weights.sum()

        if total > 0:
            out_boxes.append((boxes[cluster] * weights[:, None]).sum(axis=0) / total)
            if keypoints is not None:
                out_keypoints.append(
                    (keypoints[cluster] * weights[:, None, None]).sum(axis=0) / total
                )
        else:
            out_boxes.append(boxes[best])
            if keypoints is not None:
                out_keypoints.append(np.asarray(keypoints[best], dtype=np.float64))
        out_scores.append(scores[best])

        remaining = remaining[~in_cluster]

    merged_boxes = np.asarray(out_boxes, dtype=np.float64).reshape(-1, 4)
    merged_scores = np.asarray(out_scores, dtype=np.float64)
    merged_keypoints = None
    if keypoints is not None:
        shape = (-1,) + tuple(np.shape(keypoints)[1:])
        merged_keypoints = np.asarray(out_keypoints, dtype=np.float64).reshape(shape)

    return merged_boxes, merged_scores, merged_keypoints

"""
Drawing utilities for visualization of detections and poses

Provides:
- Draw keypoints and the 33-point BlazePose skeleton
- Draw the rotated region of interest of a detection
- 3D body plot (matplotlib)
- Color management

Keypoints are taken in normalized image space (origin bottom-left) and
converted to pixels of the image being drawn on.
"""

from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..core.constants import (
    BODY_3D_BONES,
    BODY_3D_JOINTS,
    DEFAULT_POSE_COLORS,
    KEYPOINT_COLORS,
    KEYPOINT_GROUPS,
    SKELETON_CONNECTIONS,
)
from ..pose.keypoint_utils import keypoints_to_pixels
from ..roi.region import region_corners


def _as_array(keypoints, columns: int) -> np.ndarray:
    if hasattr(keypoints, "to_array"):
        keypoints = keypoints.to_array()
    keypoints = np.asarray(keypoints, dtype=np.float64)
    if keypoints.ndim != 2 or keypoints.shape[1] < columns:
        raise ValueError(f"Expected an (N, >={columns}) keypoint array, got {keypoints.shape}")
    return keypoints


def generate_pose_color(pose_index: int) -> Tuple[int, int, int]:
    """
    Consistent color for the n-th pose of an image

    Args:
        pose_index: Pose index (0 = highest-scoring detection)

    Returns:
        (B, G, R) color tuple
    """
    if 0 <= pose_index < len(DEFAULT_POSE_COLORS):
        return DEFAULT_POSE_COLORS[pose_index]
    rng = np.random.RandomState(pose_index)
    return tuple(int(c) for c in rng.randint(0, 255, 3))


def _group_color(index: int) -> Tuple[int, int, int]:
    for group, members in KEYPOINT_GROUPS.items():
        if index in members:
            return KEYPOINT_COLORS[group]
    return (255, 255, 255)


def draw_keypoints(
    image: np.ndarray,
    keypoints,
    color: Optional[Tuple[int, int, int]] = None,
    min_visibility: float = 0.5,
    radius: int = 3
) -> np.ndarray:
    """
    Draw keypoint circles only (no skeleton)

    Args:
        image: Input image (H, W, 3), modified in place
        keypoints: Keypoints view or (33, 4) array (x, y, depth, visibility)
        color: (B, G, R) color, None for per-body-part colors
        min_visibility: Minimum visibility to draw a keypoint
        radius: Circle radius

    Returns:
        Modified image

    Example:
        >>> image = draw_keypoints(image, pose.keypoints, color=(0, 255, 0))
    """
    import cv2

    keypoints = _as_array(keypoints, 4)
    height, width = image.shape[:2]
    pixels = keypoints_to_pixels(keypoints, width, height)

    for index, ((x, y), visibility) in enumerate(zip(pixels, keypoints[:, 3])):
        if visibility < min_visibility:
            continue
        point_color = color if color is not None else _group_color(index)
        cv2.circle(image, (int(round(x)), int(round(y))), radius, point_color, -1)
        cv2.circle(image, (int(round(x)), int(round(y))), radius, (255, 255, 255), 1)

    return image


def draw_skeleton(
    image: np.ndarray,
    keypoints,
    color: Tuple[int, int, int] = (0, 255, 0),
    min_visibility: float = 0.5,
    line_thickness: int = 2,
    point_radius: int = 4
) -> np.ndarray:
    """
    Draw the BlazePose skeleton on image

    Args:
        image: Input image (H, W, 3), modified in place
        keypoints: Keypoints view or (33, 4) array
        color: (B, G, R) keypoint color; lines use a brighter shade
        min_visibility: Minimum visibility of both ends to draw a bone
        line_thickness: Skeleton line thickness
        point_radius: Keypoint circle radius

    Returns:
        Modified image

    Example:
        >>> for i, pose in enumerate(poses):
        ...     image = draw_skeleton(image, pose.keypoints, generate_pose_color(i))
    """
    import cv2

    keypoints = _as_array(keypoints, 4)
    height, width = image.shape[:2]
    pixels = np.round(keypoints_to_pixels(keypoints, width, height)).astype(int)
    visible = keypoints[:, 3] >= min_visibility

    line_color = tuple(min(255, int(c * 1.3)) for c in color)

    for idx1, idx2 in SKELETON_CONNECTIONS:
        if visible[idx1] and visible[idx2]:
            pt1 = (int(pixels[idx1][0]), int(pixels[idx1][1]))
            pt2 = (int(pixels[idx2][0]), int(pixels[idx2][1]))
            cv2.line(image, pt1, pt2, line_color, line_thickness)

    for (x, y), visibility, is_visible in zip(pixels, keypoints[:, 3], visible):
        if not is_visible:
            continue
        # Radius scales with visibility
        radius = max(1, int(point_radius * (0.5 + visibility * 0.5)))
        cv2.circle(image, (int(x), int(y)), radius, color, -1)
        cv2.circle(image, (int(x), int(y)), radius, (255, 255, 255), 1)

    return image


def draw_region(
    image: np.ndarray,
    detection,
    color: Tuple[int, int, int] = (255, 0, 0),
    thickness: int = 2,
    show_score: bool = True
) -> np.ndarray:
    """
    Draw a detection's rotated region of interest

    Args:
        image: Input image (H, W, 3), modified in place
        detection: Detection with region, rotation and score
        color: (B, G, R) outline color
        thickness: Line thickness
        show_score: Label the region with its score

    Returns:
        Modified image
    """
    import cv2

    height, width = image.shape[:2]
    corners = region_corners(detection.region, detection.rotation, (width, height))
    pixels = np.round(keypoints_to_pixels(corners, width, height)).astype(np.int32)
    cv2.polylines(image, [pixels.reshape(-1, 1, 2)], True, color, thickness, cv2.LINE_AA)

    if show_score:
        top_left = pixels[np.argmin(pixels[:, 1])]
        add_text_label(
            image, f"{detection.score:.2f}",
            position=(int(top_left[0]), max(int(top_left[1]) - 4, 12)),
            bg_color=color,
        )

    return image


def add_text_label(
    image: np.ndarray,
    text: str,
    position: Tuple[int, int] = (10, 30),
    font_scale: float = 0.6,
    thickness: int = 1,
    color: Tuple[int, int, int] = (255, 255, 255),
    bg_color: Optional[Tuple[int, int, int]] = (0, 0, 0)
) -> np.ndarray:
    """
    Add text label to image

    Args:
        image: Input image
        text: Text to display
        position: (x, y) baseline position in pixels
        font_scale: Font size
        thickness: Text thickness
        color: (B, G, R) text color
        bg_color: Background color (None for no background)

    Returns:
        Modified image
    """
    import cv2

    font = cv2.FONT_HERSHEY_SIMPLEX
    (text_w, text_h), baseline = cv2.getTextSize(text, font, font_scale, thickness)

    x, y = position

    if bg_color is not None:
        cv2.rectangle(
            image,
            (x - 2, y - text_h - baseline - 2),
            (x + text_w + 2, y + baseline + 2),
            bg_color,
            -1
        )

    cv2.putText(image, text, (x, y), font, font_scale, color, thickness, cv2.LINE_AA)

    return image


def draw_poses(
    image: np.ndarray,
    poses: Sequence,
    min_visibility: float = 0.5
) -> np.ndarray:
    """Draw every pose of an image with per-pose colors"""
    for index, pose in enumerate(poses):
        image = draw_skeleton(image, pose.keypoints, generate_pose_color(index), min_visibility)
    return image


def plot_keypoints_3d(
    keypoints3d,
    ax=None,
    color: Union[str, Tuple[float, float, float]] = "tab:blue",
    title: Optional[str] = None
):
    """
    Plot a 3D body (13 joints, 8 bone chains) with matplotlib

    World y is drawn as the vertical axis.

    Args:
        keypoints3d: Keypoints3D view or (33, 3) array
        ax: Existing 3D axes (a new figure is created if None)
        color: Matplotlib color for joints and bones
        title: Optional axes title

    Returns:
        The matplotlib 3D axes
    """
    import matplotlib.pyplot as plt

    points = _as_array(keypoints3d, 3)

    if ax is None:
        fig = plt.figure()
        ax = fig.add_subplot(111, projection="3d")

    joints = points[[int(j) for j in BODY_3D_JOINTS]]
    ax.scatter(joints[:, 0], joints[:, 2], joints[:, 1], color=color, s=12)

    for chain in BODY_3D_BONES:
        bone = points[[int(j) for j in chain]]
        ax.plot(bone[:, 0], bone[:, 2], bone[:, 1], color=color, linewidth=2)

    ax.set_xlabel("x")
    ax.set_ylabel("z")
    ax.set_zlabel("y")
    if title:
        ax.set_title(title)

    return ax

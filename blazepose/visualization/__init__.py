"""
Visualization module - Rendering detections and poses

Provides:
- Keypoint and skeleton drawing
- Rotated ROI drawing
- 3D body plot
- Color management
"""

from .drawer import (
    generate_pose_color,
    draw_keypoints,
    draw_skeleton,
    draw_region,
    draw_poses,
    add_text_label,
    plot_keypoints_3d,
)

__all__ = [
    # Color
    "generate_pose_color",
    # Drawing
    "draw_keypoints",
    "draw_skeleton",
    "draw_region",
    "draw_poses",
    "add_text_label",
    # 3D
    "plot_keypoints_3d",
]

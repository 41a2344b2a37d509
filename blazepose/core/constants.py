"""
Global constants for the BlazePose pipeline

Includes:
- BlazePose 33-keypoint definitions
- Skeleton topology for visualization
- Model output layout (strides, tensor indices)
- Detector anchor options
"""

from enum import IntEnum

# ===== BlazePose Keypoints (33 points) =====
NUM_KEYPOINTS = 33


class KeypointIndex(IntEnum):
    """Canonical index of each BlazePose keypoint"""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


# 'nose', 'left_eye_inner', ... in index order
KEYPOINT_NAMES = [kp.name.lower() for kp in KeypointIndex]

# Skeleton - connections between keypoints for visualization
SKELETON_CONNECTIONS = [
    # Face
    (0, 1), (1, 2), (2, 3), (3, 7),
    (0, 4), (4, 5), (5, 6), (6, 8),
    (9, 10),
    # Upper body
    (11, 12), (11, 13), (13, 15), (12, 14), (14, 16),
    # Hands
    (15, 17), (15, 19), (15, 21), (17, 19),
    (16, 18), (16, 20), (16, 22), (18, 20),
    # Torso
    (11, 23), (12, 24), (23, 24),
    # Lower body
    (23, 25), (25, 27), (27, 29), (29, 31), (27, 31),
    (24, 26), (26, 28), (28, 30), (30, 32), (28, 32),
]

# Keypoint groups for visualization
KEYPOINT_GROUPS = {
    'face': list(range(0, 11)),
    'upper_body': [11, 12, 13, 14, 15, 16],
    'hands': [17, 18, 19, 20, 21, 22],
    'torso': [11, 12, 23, 24],
    'lower_body': [23, 24, 25, 26, 27, 28, 29, 30, 31, 32],
}

# Reduced body used by the 3D plot (joints, then bone chains)
BODY_3D_JOINTS = [
    KeypointIndex.NOSE,
    KeypointIndex.LEFT_SHOULDER, KeypointIndex.LEFT_ELBOW, KeypointIndex.LEFT_WRIST,
    KeypointIndex.RIGHT_SHOULDER, KeypointIndex.RIGHT_ELBOW, KeypointIndex.RIGHT_WRIST,
    KeypointIndex.LEFT_HIP, KeypointIndex.LEFT_KNEE, KeypointIndex.LEFT_ANKLE,
    KeypointIndex.RIGHT_HIP, KeypointIndex.RIGHT_KNEE, KeypointIndex.RIGHT_ANKLE,
]

BODY_3D_BONES = [
    [KeypointIndex.LEFT_SHOULDER, KeypointIndex.RIGHT_SHOULDER],
    [KeypointIndex.LEFT_SHOULDER, KeypointIndex.LEFT_ELBOW, KeypointIndex.LEFT_WRIST],
    [KeypointIndex.RIGHT_SHOULDER, KeypointIndex.RIGHT_ELBOW, KeypointIndex.RIGHT_WRIST],
    [KeypointIndex.LEFT_SHOULDER, KeypointIndex.LEFT_HIP],
    [KeypointIndex.RIGHT_SHOULDER, KeypointIndex.RIGHT_HIP],
    [KeypointIndex.LEFT_HIP, KeypointIndex.RIGHT_HIP],
    [KeypointIndex.LEFT_HIP, KeypointIndex.LEFT_KNEE, KeypointIndex.LEFT_ANKLE],
    [KeypointIndex.RIGHT_HIP, KeypointIndex.RIGHT_KNEE, KeypointIndex.RIGHT_ANKLE],
]

# ===== Landmark Model Output Layout =====
# x, y, depth, visibility logit, presence logit
KEYPOINT_STRIDE = 5
KEYPOINT_3D_STRIDE = 3

# Output tensor indices of the landmark model
LANDMARK_KEYPOINTS_OUTPUT = 0
LANDMARK_SCORE_OUTPUT = 2
LANDMARK_KEYPOINTS_3D_OUTPUT = 4

# Extra alignment landmarks emitted by the full BlazePose landmark model
BLAZEPOSE_FULL_AUXILIARY_LANDMARKS = 6

# ===== Detector =====
# Detector keypoints, in output order
DETECTOR_KEYPOINT_MID_HIP = 0
DETECTOR_KEYPOINT_FULL_BODY = 1
DETECTOR_KEYPOINT_MID_SHOULDER = 2
DETECTOR_KEYPOINT_UPPER_BODY = 3
DETECTOR_NUM_KEYPOINTS = 4

# Box center/size + keypoints, (x, y) each
DETECTOR_NUM_COORDS = 4 + 2 * DETECTOR_NUM_KEYPOINTS

DETECTOR_REGRESSORS_OUTPUT = 0
DETECTOR_SCORES_OUTPUT = 1

# SSD anchor generation options for the 224x224 pose detector
DETECTOR_ANCHOR_OPTIONS = {
    'num_layers': 5,
    'min_scale': 0.1484375,
    'max_scale': 0.75,
    'input_size_height': 224,
    'input_size_width': 224,
    'anchor_offset_x': 0.5,
    'anchor_offset_y': 0.5,
    'strides': [8, 16, 32, 32, 32],
    'aspect_ratios': [1.0],
    'reduce_boxes_in_lowest_layer': False,
    'interpolated_scale_aspect_ratio': 1.0,
    'fixed_anchor_size': True,
}

DETECTOR_NUM_ANCHORS = 2254
DETECTOR_SCORE_CLIPPING = 100.0

# Detection -> ROI: rotation target (subject upright) and ROI enlargement
ROI_TARGET_ANGLE = 90.0  # degrees
DEFAULT_ROI_SCALE = 1.25

# ===== Colors (BGR, OpenCV) =====
DEFAULT_POSE_COLORS = [
    (0, 255, 0),         # Green
    (0, 0, 255),         # Red
    (255, 0, 0),         # Blue
    (0, 255, 255),       # Yellow
    (255, 0, 255),       # Magenta
    (255, 255, 0),       # Cyan
]

KEYPOINT_COLORS = {
    'face': (0, 255, 255),           # Yellow
    'upper_body': (0, 165, 255),     # Orange
    'hands': (255, 0, 255),          # Magenta
    'torso': (255, 0, 0),            # Blue
    'lower_body': (0, 255, 0),       # Green
}

# ===== CSV =====
CSV_POSE_COLUMNS = (
    ['image_name', 'pose_index', 'score']
    + [f'{kpt}_{coord}' for kpt in KEYPOINT_NAMES for coord in ['x', 'y', 'depth', 'visibility']]
    + [f'{kpt}_3d_{coord}' for kpt in KEYPOINT_NAMES for coord in ['x', 'y', 'z']]
)

VALID_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.webp'}

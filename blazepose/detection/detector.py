"""
BlazePose person detector

Runs the SSD pose detection model and turns its raw regressors into
Detections carrying a rotated region of interest for the landmark stage.

Post-processing follows the MediaPipe pose detection graph:
- anchor-relative box and keypoint decoding
- sigmoid scores with clipped logits, score threshold
- weighted non-maximum suppression
- detection -> ROI via the mid-hip and full-body keypoints
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from scipy.special import expit

from ..core.config import DetectorConfig
from ..core.constants import (
    DETECTOR_ANCHOR_OPTIONS,
    DETECTOR_KEYPOINT_FULL_BODY,
    DETECTOR_KEYPOINT_MID_HIP,
    DETECTOR_SCORE_CLIPPING,
    ROI_TARGET_ANGLE,
)
from ..core.exceptions import CorruptModelOutput
from ..io.image import ImageFeature, single_image_input
from ..roi.region import AffineTransform, Region, normalize_radians, region_to_image_transform
from ..runtime.model import InferenceModel, load_model, resolve_input_size
from .anchors import decode_boxes, generate_anchors
from .bbox_utils import weighted_non_max_suppression

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Detection:
    """
    A detected person

    All coordinates are in normalized image space (origin bottom-left).

    Attributes:
        score: Detection confidence in [0, 1]
        region: Square (in pixels) region of interest centered on the mid-hip
        rotation: Subject rotation in radians, positive when tilted clockwise
        transform: ROI -> normalized image transform for region and rotation
        keypoints: (4, 2) mid-hip, full-body, mid-shoulder, upper-body points
        bbox: Axis-aligned detection box
    """
    score: float
    region: Region
    rotation: float
    transform: AffineTransform
    keypoints: np.ndarray
    bbox: Region

    @property
    def mid_hip(self) -> Tuple[float, float]:
        return tuple(self.keypoints[DETECTOR_KEYPOINT_MID_HIP])

    @property
    def full_body(self) -> Tuple[float, float]:
        return tuple(self.keypoints[DETECTOR_KEYPOINT_FULL_BODY])


def detection_region(
    mid_hip: Tuple[float, float],
    full_body: Tuple[float, float],
    image_size: Tuple[int, int],
    roi_scale: float
) -> Tuple[Region, float]:
    """
    ROI and rotation from the detector's alignment keypoints

    The ROI is centered on the mid-hip point; its side is twice the
    mid-hip -> full-body distance measured in pixels, times ``roi_scale``.
    Rotation aligns the mid-hip -> full-body direction with the vertical.

    Args:
        mid_hip: Mid-hip point, normalized image space
        full_body: Full-body scale point, normalized image space
        image_size: (width, height) in pixels
        roi_scale: Enlargement factor of the ROI side

    Returns:
        (region, rotation). The region may be degenerate (zero side).
    """
    width, height = image_size
    # pixel space, y down
    x0, y0 = mid_hip[0] * width, (1.0 - mid_hip[1]) * height
    x1, y1 = full_body[0] * width, (1.0 - full_body[1]) * height

    side = 2.0 * math.hypot(x1 - x0, y1 - y0) * roi_scale
    target = math.radians(ROI_TARGET_ANGLE)
    rotation = normalize_radians(target - math.atan2(-(y1 - y0), x1 - x0))

    region = Region.from_center(mid_hip[0], mid_hip[1], side / width, side / height)
    return region, rotation


class BlazePoseDetector:
    """
    Person detector producing rotated regions of interest

    Not thread-safe; the pipeline serializes access.

    Example:
        >>> from blazepose.detection import BlazePoseDetector
        >>> from blazepose.core.config import DetectorConfig
        >>> detector = BlazePoseDetector.from_config(DetectorConfig(model_path="pose_detection.onnx"))
        >>> with detector:
        ...     detections = detector.detect(image)
    """

    def __init__(self, model: InferenceModel, config: Optional[DetectorConfig] = None):
        """
        Args:
            model: Detection model (takes ownership)
            config: DetectorConfig (default values if None)

        Raises:
            ConfigError: If the model's input size disagrees with the config
        """
        self.config = config or DetectorConfig()
        self.model = model
        self.input_size = resolve_input_size(model, self.config.input_size, "detector")

        options = dict(DETECTOR_ANCHOR_OPTIONS)
        options['input_size_width'], options['input_size_height'] = self.input_size
        self.anchors = generate_anchors(options)
        self._closed = False

    @classmethod
    def from_config(cls, config: DetectorConfig) -> "BlazePoseDetector":
        """
        Load the detection model named by ``config``

        Raises:
            ModelLoadError: If the model cannot be loaded
        """
        model = load_model(config.model_path, config.providers)
        try:
            return cls(model, config)
        except Exception:
            model.close()
            raise

    def detect(self, *inputs) -> List[Detection]:
        """
        Detect people in a single image

        Args:
            *inputs: Exactly one ImageFeature or (H, W, 3) array

        Returns:
            Detections ordered by descending score

        Raises:
            InvalidInput: Wrong number or type of inputs
            CorruptModelOutput: Missing or mis-sized output tensors
            InferenceFailure: Failure inside the model runtime
        """
        with single_image_input(inputs, "BlazePoseDetector") as image:
            return self._detect(image)

    def _detect(self, image: ImageFeature) -> List[Detection]:
        config = self.config
        width, height = self.input_size

        tensor = image.to_tensor(
            width, height,
            mean=config.mean,
            std=config.std,
            aspect_mode=config.aspect_mode,
            channels_first=self.model.channels_first,
        )
        with self.model.predict(tensor) as outputs:
            raw_boxes = outputs.flat(config.regressors_output)
            raw_scores = outputs.flat(config.scores_output)

        num_anchors = self.anchors.shape[0]
        if raw_scores.size != num_anchors:
            raise CorruptModelOutput(
                f"Expected {num_anchors} detector scores, got {raw_scores.size}"
            )

        boxes, keypoints = decode_boxes(raw_boxes, self.anchors, self.input_size)
        clipped = np.clip(raw_scores, -DETECTOR_SCORE_CLIPPING, DETECTOR_SCORE_CLIPPING)
        scores = expit(clipped)

        mask = scores >= config.score_threshold
        logger.debug("%d/%d anchors above score threshold", int(mask.sum()), num_anchors)
        if not mask.any():
            return []

        boxes, scores, keypoints = weighted_non_max_suppression(
            boxes[mask], scores[mask], config.min_suppression_threshold, keypoints[mask]
        )

        detections = []
        for score, box, points in zip(scores, boxes, keypoints):
            detection = self._to_detection(image, float(score), box, points)
            if detection is not None:
                detections.append(detection)

        logger.debug("Detected %d people", len(detections))
        return detections

    def _to_detection(
        self,
        image: ImageFeature,
        score: float,
        box: np.ndarray,
        points: np.ndarray
    ) -> Optional[Detection]:
        width, height = self.input_size
        aspect_mode = self.config.aspect_mode

        # undo letterbox, then flip to y up
        corners = image.tensor_to_image(box.reshape(2, 2), width, height, aspect_mode)
        points = image.tensor_to_image(points, width, height, aspect_mode)
        corners[:, 1] = 1.0 - corners[:, 1]
        points[:, 1] = 1.0 - points[:, 1]

        region, rotation = detection_region(
            points[DETECTOR_KEYPOINT_MID_HIP],
            points[DETECTOR_KEYPOINT_FULL_BODY],
            image.size,
            self.config.roi_scale,
        )
        if not region.is_valid:
            logger.debug("Dropping detection with degenerate region %s (score=%.3f)", region, score)
            return None

        (x_min, y_top), (x_max, y_bottom) = corners
        bbox = Region(
            float(x_min), float(y_bottom),
            float(x_max - x_min), float(y_top - y_bottom)
        )

        points.flags.writeable = False
        return Detection(
            score=score,
            region=region,
            rotation=rotation,
            transform=region_to_image_transform(region, rotation, image.size),
            keypoints=points,
            bbox=bbox,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the detection model. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.model.close()

    def __enter__(self) -> "BlazePoseDetector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

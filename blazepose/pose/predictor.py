"""
BlazePose landmark predictor

Runs the landmark model on an aligned ROI image and returns the raw
landmark arrays. No coordinate transform happens here; see
keypoint_utils.transform_keypoints and Pose.from_landmarks.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.config import PredictorConfig
from ..core.constants import KEYPOINT_3D_STRIDE, KEYPOINT_STRIDE, NUM_KEYPOINTS
from ..core.exceptions import CorruptModelOutput
from ..io.image import ImageFeature, single_image_input
from ..roi.region import AffineTransform
from ..runtime.model import InferenceModel, load_model, resolve_input_size
from .keypoints import Pose

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RawLandmarks:
    """
    Raw landmark model output

    Attributes:
        score: Pose presence score, as emitted by the model
        keypoints: Flat read-only float32 array, 33 x (x, y, depth,
            visibility logit, presence logit), x/y in input pixels
        keypoints3d: Flat read-only float32 array, 33 x (x, y, z)
    """
    score: float
    keypoints: np.ndarray
    keypoints3d: np.ndarray


def _take_landmarks(
    values: np.ndarray,
    stride: int,
    auxiliary: int,
    name: str
) -> np.ndarray:
    expected = (NUM_KEYPOINTS + auxiliary) * stride
    if values.size != expected:
        raise CorruptModelOutput(
            f"Expected {expected} {name} values "
            f"({NUM_KEYPOINTS} + {auxiliary} auxiliary) x {stride}, got {values.size}"
        )
    landmarks = np.array(values[:NUM_KEYPOINTS * stride], dtype=np.float32)
    landmarks.flags.writeable = False
    return landmarks


class BlazePosePredictor:
    """
    Landmark predictor for a single aligned ROI

    Not thread-safe; the pipeline serializes access.

    Example:
        >>> predictor = BlazePosePredictor.from_config(PredictorConfig())
        >>> landmarks = predictor.predict(roi_image)
        >>> print(landmarks.score, landmarks.keypoints.shape)
    """

    def __init__(self, model: InferenceModel, config: Optional[PredictorConfig] = None):
        """
        Args:
            model: Landmark model (takes ownership)
            config: PredictorConfig (default values if None)

        Raises:
            ConfigError: If the model's input size disagrees with the config
        """
        self.config = config or PredictorConfig()
        self.model = model
        self.input_size = resolve_input_size(model, self.config.input_size, "predictor")
        self._closed = False

    @classmethod
    def from_config(cls, config: PredictorConfig) -> "BlazePosePredictor":
        """
        Load the landmark model named by ``config``

        Raises:
            ModelLoadError: If the model cannot be loaded
        """
        model = load_model(config.model_path, config.providers)
        try:
            return cls(model, config)
        except Exception:
            model.close()
            raise

    def predict(self, *inputs) -> RawLandmarks:
        """
        Predict landmarks on a single ROI image

        Args:
            *inputs: Exactly one ImageFeature or (H, W, 3) array

        Returns:
            RawLandmarks copied out of the model outputs

        Raises:
            InvalidInput: Wrong number or type of inputs
            CorruptModelOutput: Missing outputs or unexpected lengths
            InferenceFailure: Failure inside the model runtime
        """
        with single_image_input(inputs, "BlazePosePredictor") as image:
            return self._predict(image)

    def _predict(self, image: ImageFeature) -> RawLandmarks:
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
            keypoints = outputs.flat(config.keypoints_output)
            score = outputs.flat(config.score_output)
            keypoints3d = outputs.flat(config.keypoints3d_output)

        if score.size == 0:
            raise CorruptModelOutput("Landmark score output is empty")

        landmarks = RawLandmarks(
            score=float(score[0]),
            keypoints=_take_landmarks(
                keypoints, KEYPOINT_STRIDE, config.auxiliary_landmarks, "landmark"
            ),
            keypoints3d=_take_landmarks(
                keypoints3d, KEYPOINT_3D_STRIDE, config.auxiliary_landmarks, "3D landmark"
            ),
        )
        logger.debug("Predicted landmarks (score=%.3f)", landmarks.score)
        return landmarks

    def predict_pose(self, *inputs) -> Pose:
        """Predict landmarks and express them in the ROI image's own space"""
        landmarks = self.predict(*inputs)
        return Pose.from_landmarks(landmarks, self.input_size, AffineTransform.identity())

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the landmark model. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.model.close()

    def __enter__(self) -> "BlazePosePredictor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

"""
Two-stage BlazePose pipeline: detector -> per-detection ROI -> landmarks

Example:
    >>> from blazepose import create_pipeline, BlazePoseConfig
    >>> config = BlazePoseConfig.from_yaml("configs/blazepose.yaml")
    >>> with create_pipeline(config) as pipeline:
    ...     poses = pipeline.predict(image)
    ...     for pose in poses:
    ...         print(pose.score, pose.keypoints.nose)
"""

import logging
import threading
from typing import List, Optional, Sequence

from tqdm import tqdm

from .core.config import BlazePoseConfig
from .core.exceptions import InvalidInput
from .detection.detector import BlazePoseDetector, Detection
from .io.image import ImageFeature, ImageLike, single_image_input
from .pose.keypoints import Pose
from .pose.predictor import BlazePosePredictor
from .roi.extractor import ROIExtractor

logger = logging.getLogger(__name__)


class BlazePosePipeline:
    """
    Detector + landmark predictor composition

    Owns both stages and their models. ``predict`` is serialized per
    instance with a lock; every per-call buffer is released before it
    returns, on success or failure.
    """

    def __init__(
        self,
        detector: BlazePoseDetector,
        predictor: BlazePosePredictor,
        max_detections: Optional[int] = None,
        fill_color: Sequence[float] = (0, 0, 0)
    ):
        """
        Args:
            detector: Person detector (takes ownership)
            predictor: Landmark predictor (takes ownership)
            max_detections: Maximum number of poses per image (None = all)
            fill_color: ROI fill for pixels outside the image
        """
        if max_detections is not None and max_detections < 0:
            raise ValueError("max_detections must be >= 0 or None")
        self.detector = detector
        self.predictor = predictor
        self.max_detections = max_detections
        self.extractor = ROIExtractor(predictor.input_size, fill_color)
        self._lock = threading.Lock()
        self._closed = False

    def predict(self, *inputs: ImageLike) -> List[Pose]:
        """
        Estimate every pose in a single image

        Args:
            *inputs: Exactly one ImageFeature or (H, W, 3) array

        Returns:
            Poses in detector order (descending detection score), at most
            ``max_detections``. Empty if nobody was detected.

        Raises:
            InvalidInput: Wrong number or type of inputs, or closed pipeline
            InvalidRegion: Degenerate ROI
            CorruptModelOutput: Malformed model outputs
            InferenceFailure: Failure inside a model runtime
        """
        with self._lock:
            if self._closed:
                raise InvalidInput("Pipeline has been closed")
            with single_image_input(inputs, "BlazePosePipeline") as image:
                return self._predict(image)

    def _predict(self, image: ImageFeature) -> List[Pose]:
        detections = self.detector.detect(image)
        if self.max_detections is not None:
            detections = detections[:self.max_detections]

        poses = [self._predict_detection(image, detection) for detection in detections]
        logger.debug("Estimated %d poses", len(poses))
        return poses

    def _predict_detection(self, image: ImageFeature, detection: Detection) -> Pose:
        roi, transform = self.extractor.extract(image, detection.region, detection.rotation)
        with roi:
            landmarks = self.predictor.predict(roi)
        return Pose.from_landmarks(landmarks, self.predictor.input_size, transform)

    def predict_batch(
        self,
        images: Sequence[ImageLike],
        show_progress: bool = True
    ) -> List[List[Pose]]:
        """
        Run ``predict`` over several images

        Args:
            images: Images (ImageFeature or arrays)
            show_progress: Show a progress bar

        Returns:
            One pose list per image
        """
        iterator = tqdm(images, desc="Estimating poses") if show_progress else images
        return [self.predict(image) for image in iterator]

    @property
    def fill_color(self):
        return self.extractor.fill_color

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release both stages. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                if getattr(self, "detector", None) is not None:
                    self.detector.close()
            finally:
                if getattr(self, "predictor", None) is not None:
                    self.predictor.close()

    def __enter__(self) -> "BlazePosePipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def create_pipeline(
    config: Optional[BlazePoseConfig] = None,
    detector: Optional[BlazePoseDetector] = None,
    predictor: Optional[BlazePosePredictor] = None,
    max_detections: Optional[int] = None
) -> BlazePosePipeline:
    """
    Build a pipeline, loading whichever stage was not injected

    Args:
        config: BlazePoseConfig (defaults if None)
        detector: Pre-built detector (ownership passes to the pipeline)
        predictor: Pre-built predictor (ownership passes to the pipeline)
        max_detections: Overrides config.pipeline.max_detections

    Returns:
        BlazePosePipeline instance

    Raises:
        ModelLoadError: If a model cannot be loaded. A stage already built
            here is closed first; injected stages are left to the caller.
    """
    config = config or BlazePoseConfig()
    if max_detections is None:
        max_detections = config.pipeline.max_detections

    built = []
    try:
        if detector is None:
            detector = BlazePoseDetector.from_config(config.detector)
            built.append(detector)
        if predictor is None:
            predictor = BlazePosePredictor.from_config(config.predictor)
            built.append(predictor)
        return BlazePosePipeline(
            detector,
            predictor,
            max_detections=max_detections,
            fill_color=config.pipeline.fill_color,
        )
    except Exception:
        for stage in built:
            stage.close()
        raise

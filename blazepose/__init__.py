"""
BlazePose Pipeline - Two-stage 33-keypoint human pose estimation

A Python package for:
- SSD person detection with rotated regions of interest
- Aligned ROI extraction
- 33-keypoint 2D/3D landmark prediction
- Mapping landmarks back to normalized image and world space
"""

__version__ = "0.1.0"
__author__ = "BlazePose Pipeline Team"

# Core imports (no model runtime needed)
from .core.config import (
    BlazePoseConfig,
    DetectorConfig,
    PredictorConfig,
    PipelineConfig,
    LoggingConfig,
)
from .core.constants import (
    NUM_KEYPOINTS,
    KeypointIndex,
    KEYPOINT_NAMES,
    SKELETON_CONNECTIONS,
)
from .core.exceptions import (
    BlazePoseException,
    InvalidInput,
    InvalidRegion,
    CorruptModelOutput,
    InferenceFailure,
    ModelLoadError,
    ConfigError,
    ImageLoadError,
    DataLoadError,
)


# Lazy imports for modules pulling in OpenCV / SciPy / tqdm
def __getattr__(name):
    """Lazy loading for modules with heavier dependencies"""
    if name in ("BlazePosePipeline", "create_pipeline"):
        from . import pipeline
        return getattr(pipeline, name)
    elif name in ("BlazePoseDetector", "Detection"):
        from .detection import detector
        return getattr(detector, name)
    elif name in ("BlazePosePredictor", "RawLandmarks"):
        from .pose import predictor
        return getattr(predictor, name)
    elif name in ("Pose", "Keypoints", "Keypoints3D"):
        from .pose import keypoints
        return getattr(keypoints, name)
    elif name in ("ImageFeature", "AspectMode"):
        from .io import image
        return getattr(image, name)
    elif name == "ImageLoader":
        from .io.data_loader import ImageLoader
        return ImageLoader
    elif name in ("Region", "AffineTransform"):
        from .roi import region
        return getattr(region, name)
    elif name == "extract_roi":
        from .roi.extractor import extract_roi
        return extract_roi
    elif name in ("InferenceModel", "CallableModel", "OnnxModel", "load_model"):
        from .runtime import model
        return getattr(model, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Version
    "__version__",
    # Config
    "BlazePoseConfig",
    "DetectorConfig",
    "PredictorConfig",
    "PipelineConfig",
    "LoggingConfig",
    # Constants
    "NUM_KEYPOINTS",
    "KeypointIndex",
    "KEYPOINT_NAMES",
    "SKELETON_CONNECTIONS",
    # Exceptions
    "BlazePoseException",
    "InvalidInput",
    "InvalidRegion",
    "CorruptModelOutput",
    "InferenceFailure",
    "ModelLoadError",
    "ConfigError",
    "ImageLoadError",
    "DataLoadError",
    # Pipeline
    "BlazePosePipeline",
    "create_pipeline",
    "BlazePoseDetector",
    "Detection",
    "BlazePosePredictor",
    "RawLandmarks",
    "Pose",
    "Keypoints",
    "Keypoints3D",
    # IO / geometry
    "ImageFeature",
    "AspectMode",
    "ImageLoader",
    "Region",
    "AffineTransform",
    "extract_roi",
    # Runtime
    "InferenceModel",
    "CallableModel",
    "OnnxModel",
    "load_model",
]

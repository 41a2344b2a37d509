"""
Core module - Configuration, constants, and exceptions for the BlazePose pipeline
"""

from .config import (
    BlazePoseConfig,
    DetectorConfig,
    PredictorConfig,
    PipelineConfig,
    LoggingConfig,
)
from .constants import (
    NUM_KEYPOINTS,
    KeypointIndex,
    KEYPOINT_NAMES,
    SKELETON_CONNECTIONS,
    KEYPOINT_STRIDE,
    KEYPOINT_3D_STRIDE,
)
from .exceptions import (
    BlazePoseException,
    InvalidInput,
    InvalidRegion,
    CorruptModelOutput,
    InferenceFailure,
    ModelLoadError,
    ConfigError,
    ImageLoadError,
    DataLoadError,
    handle_blazepose_exception,
)
from .logging_utils import setup_logging

__all__ = [
    "BlazePoseConfig",
    "DetectorConfig",
    "PredictorConfig",
    "PipelineConfig",
    "LoggingConfig",
    "NUM_KEYPOINTS",
    "KeypointIndex",
    "KEYPOINT_NAMES",
    "SKELETON_CONNECTIONS",
    "KEYPOINT_STRIDE",
    "KEYPOINT_3D_STRIDE",
    "BlazePoseException",
    "InvalidInput",
    "InvalidRegion",
    "CorruptModelOutput",
    "InferenceFailure",
    "ModelLoadError",
    "ConfigError",
    "ImageLoadError",
    "DataLoadError",
    "handle_blazepose_exception",
    "setup_logging",
]

"""
Configuration management for the BlazePose pipeline

Central configuration system supporting:
- Dataclass-based configs, one per model plus pipeline and logging
- YAML file loading
- Environment variable overrides
- Runtime modification
"""

import os
import yaml
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional, Dict, Any, Tuple

from .constants import (
    DEFAULT_ROI_SCALE,
    DETECTOR_REGRESSORS_OUTPUT,
    DETECTOR_SCORES_OUTPUT,
    LANDMARK_KEYPOINTS_OUTPUT,
    LANDMARK_SCORE_OUTPUT,
    LANDMARK_KEYPOINTS_3D_OUTPUT,
)
from .exceptions import ConfigError

VALID_ASPECT_MODES = ["stretch", "letterbox", "crop"]
DEFAULT_PROVIDERS = ["CPUExecutionProvider"]


def _validate_normalization(name: str, mean, std) -> None:
    if len(mean) != 3 or len(std) != 3:
        raise ConfigError(f"{name}: mean and std must have 3 channels")
    if any(s == 0 for s in std):
        raise ConfigError(f"{name}: std must be non-zero")


@dataclass
class DetectorConfig:
    """Configuration for the person detector model"""
    model_path: str = "pose_detection.onnx"
    input_width: int = 224
    input_height: int = 224
    mean: Tuple[float, float, float] = (0.5, 0.5, 0.5)
    std: Tuple[float, float, float] = (0.5, 0.5, 0.5)
    aspect_mode: str = "letterbox"
    score_threshold: float = 0.5
    min_suppression_threshold: float = 0.3
    roi_scale: float = DEFAULT_ROI_SCALE
    regressors_output: int = DETECTOR_REGRESSORS_OUTPUT
    scores_output: int = DETECTOR_SCORES_OUTPUT
    providers: List[str] = field(default_factory=lambda: list(DEFAULT_PROVIDERS))

    def __post_init__(self):
        """Validate configuration"""
        self.mean = tuple(self.mean)
        self.std = tuple(self.std)
        if self.input_width < 1 or self.input_height < 1:
            raise ConfigError("detector input size must be positive")
        if self.score_threshold < 0 or self.score_threshold > 1:
            raise ConfigError("score_threshold must be between 0 and 1")
        if self.min_suppression_threshold < 0 or self.min_suppression_threshold > 1:
            raise ConfigError("min_suppression_threshold must be between 0 and 1")
        if self.roi_scale <= 0:
            raise ConfigError("roi_scale must be > 0")
        if self.aspect_mode not in VALID_ASPECT_MODES:
            raise ConfigError(f"aspect_mode must be one of {VALID_ASPECT_MODES}")
        _validate_normalization("detector", self.mean, self.std)

    @property
    def input_size(self) -> Tuple[int, int]:
        """(width, height) of the model input"""
        return self.input_width, self.input_height


@dataclass
class PredictorConfig:
    """Configuration for the landmark predictor model"""
    model_path: str = "pose_landmark_full.onnx"
    input_width: int = 256
    input_height: int = 256
    mean: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    std: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    aspect_mode: str = "stretch"
    keypoints_output: int = LANDMARK_KEYPOINTS_OUTPUT
    score_output: int = LANDMARK_SCORE_OUTPUT
    keypoints3d_output: int = LANDMARK_KEYPOINTS_3D_OUTPUT
    auxiliary_landmarks: int = 0
    providers: List[str] = field(default_factory=lambda: list(DEFAULT_PROVIDERS))

    def __post_init__(self):
        """Validate configuration"""
        self.mean = tuple(self.mean)
        self.std = tuple(self.std)
        if self.input_width < 1 or self.input_height < 1:
            raise ConfigError("predictor input size must be positive")
        if self.auxiliary_landmarks < 0:
            raise ConfigError("auxiliary_landmarks must be >= 0")
        if self.aspect_mode not in VALID_ASPECT_MODES:
            raise ConfigError(f"aspect_mode must be one of {VALID_ASPECT_MODES}")
        _validate_normalization("predictor", self.mean, self.std)

    @property
    def input_size(self) -> Tuple[int, int]:
        """(width, height) of the model input"""
        return self.input_width, self.input_height


@dataclass
class PipelineConfig:
    """Configuration for the detector -> predictor composition"""
    max_detections: Optional[int] = None  # None = unbounded
    fill_color: Tuple[int, int, int] = (0, 0, 0)

    def __post_init__(self):
        """Validate configuration"""
        self.fill_color = tuple(self.fill_color)
        if self.max_detections is not None and self.max_detections < 0:
            raise ConfigError("max_detections must be >= 0 or None")


@dataclass
class LoggingConfig:
    """Configuration for log output"""
    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file: Optional[str] = None

    def __post_init__(self):
        """Validate configuration"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        self.level = self.level.upper()
        if self.level not in valid_levels:
            raise ConfigError(f"level must be one of {valid_levels}")


@dataclass
class BlazePoseConfig:
    """Master configuration class combining all subconfigs"""
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    predictor: PredictorConfig = field(default_factory=PredictorConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "BlazePoseConfig":
        """
        Load configuration from YAML file

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            BlazePoseConfig instance

        Raises:
            ConfigError: If YAML file not found, malformed or has unknown keys
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise ConfigError(f"Config file not found: {yaml_path}")

        try:
            with open(yaml_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML format in {yaml_path}: {e}")

        try:
            return cls(
                detector=DetectorConfig(**data.get('detector', {})),
                predictor=PredictorConfig(**data.get('predictor', {})),
                pipeline=PipelineConfig(**data.get('pipeline', {})),
                logging=LoggingConfig(**data.get('logging', {})),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration keys in {yaml_path}: {e}")

    @classmethod
    def from_env(cls, base_config: Optional["BlazePoseConfig"] = None) -> "BlazePoseConfig":
        """
        Create config from environment variables

        Supports environment variables like:
        - BLAZEPOSE_DETECTOR_MODEL_PATH
        - BLAZEPOSE_PREDICTOR_MODEL_PATH
        - BLAZEPOSE_MAX_DETECTIONS
        - BLAZEPOSE_SCORE_THRESHOLD
        - BLAZEPOSE_PROVIDERS (comma separated)
        - BLAZEPOSE_LOG_LEVEL

        Args:
            base_config: Base configuration to override (default: new config)

        Returns:
            BlazePoseConfig instance with environment overrides
        """
        if base_config is None:
            config = cls()
        else:
            config = base_config

        # Override model paths
        if 'BLAZEPOSE_DETECTOR_MODEL_PATH' in os.environ:
            config.detector.model_path = os.environ['BLAZEPOSE_DETECTOR_MODEL_PATH']
        if 'BLAZEPOSE_PREDICTOR_MODEL_PATH' in os.environ:
            config.predictor.model_path = os.environ['BLAZEPOSE_PREDICTOR_MODEL_PATH']

        # Override detection behaviour
        if 'BLAZEPOSE_SCORE_THRESHOLD' in os.environ:
            config.detector.score_threshold = float(os.environ['BLAZEPOSE_SCORE_THRESHOLD'])
        if 'BLAZEPOSE_MAX_DETECTIONS' in os.environ:
            value = os.environ['BLAZEPOSE_MAX_DETECTIONS'].strip()
            config.pipeline.max_detections = int(value) if value else None

        # Override runtime
        if 'BLAZEPOSE_PROVIDERS' in os.environ:
            providers = [p.strip() for p in os.environ['BLAZEPOSE_PROVIDERS'].split(',') if p.strip()]
            config.detector.providers = list(providers)
            config.predictor.providers = list(providers)

        if 'BLAZEPOSE_LOG_LEVEL' in os.environ:
            config.logging.level = os.environ['BLAZEPOSE_LOG_LEVEL'].upper()

        # Re-run validation on the overridden values
        config.detector.__post_init__()
        config.predictor.__post_init__()
        config.pipeline.__post_init__()
        config.logging.__post_init__()

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        data = asdict(self)
        # YAML-friendly: tuples as lists
        for section in data.values():
            for key, value in section.items():
                if isinstance(value, tuple):
                    section[key] = list(value)
        return data

    def to_yaml(self, yaml_path: str) -> None:
        """
        Save configuration to YAML file

        Args:
            yaml_path: Path to save YAML configuration
        """
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def __str__(self) -> str:
        """String representation of config"""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

"""
Custom exceptions for the BlazePose pipeline

Provides specific exception types for:
- Invalid inputs handed to the detector, predictor or pipeline
- Degenerate regions of interest
- Model outputs that break the 33-keypoint contract
- Failures inside the inference runtime
- Model, configuration and data loading errors
"""

import logging

logger = logging.getLogger(__name__)


class BlazePoseException(Exception):
    """
    Base exception class for all BlazePose pipeline exceptions

    All custom exceptions inherit from this class so callers can catch
    every pipeline failure with a single except clause.
    """
    pass


class InvalidInput(BlazePoseException):
    """
    Raised when a stage receives something other than a single image

    Reasons:
    - Wrong number of features passed to the detector, predictor or pipeline
    - Feature is not an image (ndarray H x W x C or ImageFeature)
    - Image buffer has already been released

    Example:
        >>> from blazepose.core.exceptions import InvalidInput
        >>> try:
        ...     pipeline.predict(image_a, image_b)
        ... except InvalidInput as e:
        ...     print(f"Bad input: {e}")
    """
    pass


class InvalidRegion(BlazePoseException):
    """
    Raised when a region of interest is degenerate

    Reasons:
    - Zero, negative or non-finite width/height
    - Region transform is not invertible
    """
    pass


class CorruptModelOutput(BlazePoseException):
    """
    Raised when model output tensors do not match the expected layout

    Reasons:
    - Output tensor index missing from the inference result
    - Raw keypoint array length differs from 33 x stride
    - Detector regressor/score tensors disagree with the anchor count
    """
    pass


class InferenceFailure(BlazePoseException):
    """
    Raised by the inference boundary when the runtime itself fails

    The original runtime error is kept as ``__cause__``. Detector,
    predictor and pipeline never catch or re-wrap this error.
    """
    pass


class ModelLoadError(BlazePoseException):
    """
    Raised when a model fails to load

    Reasons:
    - Model file does not exist
    - Inference runtime package not installed
    - Runtime rejected the model file

    Example:
        >>> from blazepose.core.exceptions import ModelLoadError
        >>> from blazepose.runtime import OnnxModel
        >>> try:
        ...     model = OnnxModel("missing.onnx")
        ... except ModelLoadError as e:
        ...     print(f"Failed to load model: {e}")
    """
    pass


class ConfigError(BlazePoseException):
    """
    Raised when configuration is invalid or missing

    Reasons:
    - Configuration value is out of valid range
    - Unknown aspect mode
    - Invalid configuration file format
    """
    pass


class ImageLoadError(BlazePoseException):
    """
    Raised when an image fails to load

    Reasons:
    - File does not exist
    - File format is corrupted or unsupported
    """
    pass


class DataLoadError(BlazePoseException):
    """
    Raised when result files (CSV, JSON) fail to load
    """
    pass


def handle_blazepose_exception(e: BlazePoseException, verbose: bool = True) -> str:
    """
    Handle BlazePose exceptions with formatted error message

    Args:
        e: The BlazePoseException instance
        verbose: If True, log the message at error level

    Returns:
        Formatted error message string
    """
    error_type = type(e).__name__
    error_msg = str(e)
    formatted_msg = f"[{error_type}] {error_msg}"

    if verbose:
        logger.error(formatted_msg)

    return formatted_msg

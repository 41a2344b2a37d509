"""
Inference boundary: opaque models turning an input tensor into outputs

Provides:
- ModelOutputs: scoped, index-checked container of output tensors
- InferenceModel: base class with idempotent close and context manager
- CallableModel: wraps any ``fn(tensor) -> sequence of arrays``
- OnnxModel: ONNX Runtime session wrapper
- load_model: build a model from a file path

Every failure inside the runtime surfaces as ``InferenceFailure`` with the
original error chained; callers never retry.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..core.exceptions import (
    BlazePoseException,
    ConfigError,
    CorruptModelOutput,
    InferenceFailure,
    ModelLoadError,
)

logger = logging.getLogger(__name__)


class ModelOutputs:
    """
    Output tensors of a single inference call

    Scoped to the call that produced them: ``release()`` (or leaving the
    ``with`` block) drops every tensor. Indexing a missing output raises
    ``CorruptModelOutput``.
    """

    def __init__(self, tensors: Sequence[np.ndarray]):
        self._tensors: Optional[List[np.ndarray]] = [
            np.asarray(t, dtype=np.float32) for t in tensors
        ]

    def _check(self) -> List[np.ndarray]:
        if self._tensors is None:
            raise CorruptModelOutput("Model outputs have already been released")
        return self._tensors

    def __len__(self) -> int:
        return len(self._check())

    def __getitem__(self, index: int) -> np.ndarray:
        tensors = self._check()
        if not 0 <= index < len(tensors):
            raise CorruptModelOutput(
                f"Model produced {len(tensors)} outputs, output {index} is missing"
            )
        return tensors[index]

    def flat(self, index: int) -> np.ndarray:
        """Copy of output ``index`` flattened to 1-D float32"""
        return np.array(self[index], dtype=np.float32).reshape(-1)

    @property
    def released(self) -> bool:
        return self._tensors is None

    def release(self) -> None:
        self._tensors = None

    def __enter__(self) -> "ModelOutputs":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class InferenceModel(ABC):
    """
    Base class for an inference resource

    Subclasses implement ``_run`` (and optionally ``_release``). A model
    instance is not reentrant; callers serialize access.
    """

    #: Tensor layout expected by the model
    channels_first: bool = False

    def __init__(self, name: str = "model"):
        self.name = name
        self._closed = False

    @property
    def input_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) declared by the model, or None if dynamic"""
        return None

    @property
    def closed(self) -> bool:
        return self._closed

    def predict(self, tensor: np.ndarray) -> ModelOutputs:
        """
        Run inference on one input tensor

        Raises:
            InferenceFailure: If the model is closed or the runtime fails
        """
        if self._closed:
            raise InferenceFailure(f"Model '{self.name}' has been closed")
        return ModelOutputs(self._run(tensor))

    @abstractmethod
    def _run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        ...

    def _release(self) -> None:
        pass

    def close(self) -> None:
        """Release the model. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._release()
        logger.debug("Closed model '%s'", self.name)

    def __enter__(self) -> "InferenceModel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class CallableModel(InferenceModel):
    """
    Adapter turning a plain function into an InferenceModel

    Example:
        >>> model = CallableModel(lambda t: [np.zeros(165), np.zeros(1), np.ones(1)],
        ...                       input_size=(256, 256))
    """

    def __init__(
        self,
        fn: Callable[[np.ndarray], Sequence[np.ndarray]],
        input_size: Optional[Tuple[int, int]] = None,
        channels_first: bool = False,
        name: str = "callable",
        on_close: Optional[Callable[[], None]] = None
    ):
        super().__init__(name)
        self._fn = fn
        self._input_size = None if input_size is None else tuple(input_size)
        self.channels_first = channels_first
        self._on_close = on_close

    @property
    def input_size(self) -> Optional[Tuple[int, int]]:
        return self._input_size

    def _run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        try:
            return self._fn(tensor)
        except BlazePoseException:
            raise
        except Exception as e:
            raise InferenceFailure(f"Inference call '{self.name}' failed: {e}") from e

    def _release(self) -> None:
        if self._on_close is not None:
            self._on_close()


class OnnxModel(InferenceModel):
    """
    ONNX Runtime model

    Picks the first input of the graph; NHWC vs NCHW layout and the static
    input size are read from its shape.
    """

    def __init__(self, model_path: str, providers: Optional[Sequence[str]] = None):
        """
        Args:
            model_path: Path to a .onnx file
            providers: ONNX Runtime execution providers, in priority order

        Raises:
            ModelLoadError: If onnxruntime is missing or the model cannot load
        """
        super().__init__(Path(model_path).name)

        try:
            import onnxruntime as ort
        except ImportError:
            raise ModelLoadError(
                "onnxruntime package not installed. Install with: pip install onnxruntime"
            )

        if not Path(model_path).exists():
            raise ModelLoadError(f"Model file not found: {model_path}")

        available = ort.get_available_providers()
        providers = [p for p in (providers or ["CPUExecutionProvider"]) if p in available]
        if not providers:
            providers = ["CPUExecutionProvider"]

        try:
            self._session = ort.InferenceSession(str(model_path), providers=providers)
        except Exception as e:
            raise ModelLoadError(f"Failed to load ONNX model '{model_path}': {e}")

        model_input = self._session.get_inputs()[0]
        self._input_name = model_input.name
        self._output_names = [o.name for o in self._session.get_outputs()]
        self._input_size = None

        shape = list(model_input.shape)
        if len(shape) == 4:
            self.channels_first = shape[1] == 3 and shape[3] != 3
            height, width = (shape[2], shape[3]) if self.channels_first else (shape[1], shape[2])
            if isinstance(width, int) and isinstance(height, int):
                self._input_size = (width, height)

        logger.info(f"Loaded ONNX model: {model_path}")
        logger.info(f"  Providers: {self._session.get_providers()}")

    @property
    def input_size(self) -> Optional[Tuple[int, int]]:
        return self._input_size

    def _run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        try:
            return self._session.run(self._output_names, {self._input_name: tensor})
        except Exception as e:
            raise InferenceFailure(f"ONNX inference failed for '{self.name}': {e}") from e

    def _release(self) -> None:
        self._session = None


def load_model(model_path: str, providers: Optional[Sequence[str]] = None) -> InferenceModel:
    """
    Load an inference model from disk

    Args:
        model_path: Path to the model file (.onnx)
        providers: Runtime execution providers

    Returns:
        InferenceModel instance

    Raises:
        ModelLoadError: If the file type is unsupported or loading fails
    """
    suffix = Path(model_path).suffix.lower()
    if suffix != ".onnx":
        raise ModelLoadError(f"Unsupported model format '{suffix}' for {model_path}")
    return OnnxModel(model_path, providers)


def resolve_input_size(
    model: InferenceModel,
    configured: Tuple[int, int],
    component: str
) -> Tuple[int, int]:
    """
    Input size to feed ``model``: its declared size, else the configured one

    Raises:
        ConfigError: If the model declares a size different from the config
    """
    declared = model.input_size
    if declared is None:
        return tuple(configured)
    if tuple(declared) != tuple(configured):
        raise ConfigError(
            f"{component}: model input size {tuple(declared)} does not match "
            f"configured input size {tuple(configured)}"
        )
    return tuple(declared)

"""
Image feature: the image buffer handed to the detector and predictor

Wraps an (H, W, 3) pixel array together with the per-channel
normalization and aspect handling applied when it is turned into a model
input tensor.

Coordinate conventions used across the package:
- Pixel space: origin top-left of the array, y down (row index)
- Normalized image space: [0, 1] x [0, 1], origin bottom-left, y up
- Tensor space: [0, 1] x [0, 1] over the model input, origin top-left,
  as emitted by the models
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from ..core.exceptions import InvalidInput


class AspectMode(str, Enum):
    """How a mismatched aspect ratio is resolved when building a tensor"""
    STRETCH = "stretch"      # resize both axes independently
    LETTERBOX = "letterbox"  # fit inside, pad the rest
    CROP = "crop"            # fill, center-crop the overflow


class ImageFeature:
    """
    Immutable image buffer with normalization and aspect settings

    The wrapped array is exposed read-only. The feature is a scoped
    resource: ``release()`` drops the pixel buffer and any later access
    raises ``InvalidInput``. Use it as a context manager to release on
    every exit path.

    Example:
        >>> with ImageFeature(rgb_array) as image:
        ...     poses = pipeline.predict(image)
    """

    def __init__(
        self,
        data: np.ndarray,
        mean: Optional[Sequence[float]] = None,
        std: Optional[Sequence[float]] = None,
        aspect_mode: Optional[Union[AspectMode, str]] = None
    ):
        """
        Args:
            data: (H, W, 3) array, uint8 in [0, 255] or float in [0, 1]
            mean: Per-channel mean subtracted after scaling to [0, 1]
            std: Per-channel std dividing after mean subtraction
            aspect_mode: Default aspect handling for ``to_tensor``

        Raises:
            InvalidInput: If data is not a non-empty 3-channel image
        """
        if not isinstance(data, np.ndarray):
            raise InvalidInput(f"Expected an image array, got {type(data).__name__}")
        if data.ndim != 3 or data.shape[2] != 3:
            raise InvalidInput(f"Expected an (H, W, 3) image, got shape {data.shape}")
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise InvalidInput("Image has zero area")

        self._data = np.ascontiguousarray(data)
        self.mean = None if mean is None else tuple(float(m) for m in mean)
        self.std = None if std is None else tuple(float(s) for s in std)
        self.aspect_mode = None if aspect_mode is None else AspectMode(aspect_mode)

    @classmethod
    def from_pil(cls, image, **kwargs) -> "ImageFeature":
        """Create a feature from a PIL image (converted to RGB)"""
        return cls(np.asarray(image.convert("RGB")), **kwargs)

    # ----- Buffer access -----

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def data(self) -> np.ndarray:
        """Read-only view of the pixel buffer"""
        view = self._buffer().view()
        view.flags.writeable = False
        return view

    @property
    def width(self) -> int:
        return self._buffer().shape[1]

    @property
    def height(self) -> int:
        return self._buffer().shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels"""
        return self.width, self.height

    def _buffer(self) -> np.ndarray:
        if self._data is None:
            raise InvalidInput("Image feature has been released")
        return self._data

    def release(self) -> None:
        """Drop the pixel buffer. Safe to call more than once."""
        self._data = None

    def __enter__(self) -> "ImageFeature":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        if self.released:
            return "ImageFeature(released)"
        return f"ImageFeature({self.width}x{self.height}, aspect_mode={self.aspect_mode})"

    # ----- Tensor conversion -----

    def _resolve_aspect_mode(self, aspect_mode) -> AspectMode:
        if aspect_mode is not None:
            return AspectMode(aspect_mode)
        if self.aspect_mode is not None:
            return self.aspect_mode
        return AspectMode.STRETCH

    def aspect_params(
        self,
        width: int,
        height: int,
        aspect_mode: Optional[Union[AspectMode, str]] = None
    ) -> Tuple[int, int, int, int]:
        """
        Placement of the resized image inside a (width, height) tensor

        Returns:
            (scaled_width, scaled_height, offset_x, offset_y) in tensor
            pixels. Offsets are negative when the image overflows (crop).
        """
        mode = self._resolve_aspect_mode(aspect_mode)
        src_w, src_h = self.size

        if mode == AspectMode.STRETCH:
            return width, height, 0, 0

        if mode == AspectMode.LETTERBOX:
            scale = min(width / src_w, height / src_h)
            scaled_w = min(width, max(1, int(round(src_w * scale))))
            scaled_h = min(height, max(1, int(round(src_h * scale))))
        else:
            scale = max(width / src_w, height / src_h)
            scaled_w = max(width, int(round(src_w * scale)))
            scaled_h = max(height, int(round(src_h * scale)))

        return scaled_w, scaled_h, (width - scaled_w) // 2, (height - scaled_h) // 2

    def to_tensor(
        self,
        width: int,
        height: int,
        mean: Optional[Sequence[float]] = None,
        std: Optional[Sequence[float]] = None,
        aspect_mode: Optional[Union[AspectMode, str]] = None,
        channels_first: bool = False
    ) -> np.ndarray:
        """
        Build a float32 model input tensor

        Pixels are scaled to [0, 1] (uint8 input), resized with the
        aspect mode, then normalized as (value - mean) / std. Arguments
        override the feature's own settings.

        Args:
            width: Tensor width
            height: Tensor height
            mean: Per-channel mean (default: feature's, else 0)
            std: Per-channel std (default: feature's, else 1)
            aspect_mode: Aspect handling (default: feature's, else stretch)
            channels_first: Produce NCHW instead of NHWC

        Returns:
            (1, height, width, 3) or (1, 3, height, width) float32 array
        """
        pixels = self._buffer()
        scaled_w, scaled_h, offset_x, offset_y = self.aspect_params(width, height, aspect_mode)

        interpolation = cv2.INTER_AREA if scaled_w < self.width else cv2.INTER_LINEAR
        resized = cv2.resize(pixels, (scaled_w, scaled_h), interpolation=interpolation)

        canvas = np.zeros((height, width, 3), dtype=resized.dtype)
        dst_x0, dst_y0 = max(offset_x, 0), max(offset_y, 0)
        src_x0, src_y0 = max(-offset_x, 0), max(-offset_y, 0)
        copy_w = min(scaled_w - src_x0, width - dst_x0)
        copy_h = min(scaled_h - src_y0, height - dst_y0)
        canvas[dst_y0:dst_y0 + copy_h, dst_x0:dst_x0 + copy_w] = \
            resized[src_y0:src_y0 + copy_h, src_x0:src_x0 + copy_w]

        tensor = canvas.astype(np.float32)
        if pixels.dtype == np.uint8:
            tensor /= 255.0

        mean = mean if mean is not None else (self.mean or (0.0, 0.0, 0.0))
        std = std if std is not None else (self.std or (1.0, 1.0, 1.0))
        tensor = (tensor - np.asarray(mean, dtype=np.float32)) / np.asarray(std, dtype=np.float32)

        if channels_first:
            tensor = tensor.transpose(2, 0, 1)
        return np.ascontiguousarray(tensor[np.newaxis], dtype=np.float32)

    def tensor_to_image(
        self,
        points: np.ndarray,
        width: int,
        height: int,
        aspect_mode: Optional[Union[AspectMode, str]] = None
    ) -> np.ndarray:
        """
        Map tensor-space points back onto the image, undoing aspect handling

        Args:
            points: (..., 2) points normalized over the (width, height)
                tensor, origin top-left
            width: Tensor width used by ``to_tensor``
            height: Tensor height used by ``to_tensor``
            aspect_mode: Aspect handling used by ``to_tensor``

        Returns:
            (..., 2) points normalized over the image, origin top-left
        """
        scaled_w, scaled_h, offset_x, offset_y = self.aspect_params(width, height, aspect_mode)
        points = np.asarray(points, dtype=np.float64)
        result = np.empty_like(points)
        result[..., 0] = (points[..., 0] * width - offset_x) / scaled_w
        result[..., 1] = (points[..., 1] * height - offset_y) / scaled_h
        return result


ImageLike = Union[ImageFeature, np.ndarray]


@contextmanager
def single_image_input(inputs: Sequence, component: str) -> Iterator[ImageFeature]:
    """
    Validate that exactly one image was passed and yield it as a feature

    Arrays are wrapped in a temporary feature which is released on exit;
    features passed by the caller stay owned by the caller.

    Raises:
        InvalidInput: On wrong arity or type
    """
    if len(inputs) != 1:
        raise InvalidInput(f"{component} expects a single image feature, got {len(inputs)}")

    feature = inputs[0]
    if isinstance(feature, ImageFeature):
        if feature.released:
            raise InvalidInput(f"{component} received a released image feature")
        yield feature
        return

    if not isinstance(feature, np.ndarray):
        raise InvalidInput(f"{component} expects an image feature, got {type(feature).__name__}")

    with ImageFeature(feature) as owned:
        yield owned

"""
Keypoint views and the Pose value

Keypoints and Keypoints3D are read-only 33-element sequences computed on
access from the raw landmark arrays they share with the RawLandmarks that
produced them. Named accessors (``pose.keypoints.left_wrist``) are
generated from KeypointIndex.
"""

from abc import abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import numpy as np

from ..core.constants import (
    KEYPOINT_3D_STRIDE,
    KEYPOINT_STRIDE,
    NUM_KEYPOINTS,
    KeypointIndex,
)
from ..roi.region import AffineTransform
from .keypoint_utils import (
    keypoints_to_pixels,
    transform_keypoint,
    transform_keypoint_3d,
    transform_keypoints,
    transform_keypoints_3d,
    validate_raw_landmarks,
)

if TYPE_CHECKING:
    from .predictor import RawLandmarks


def _shared_view(raw: np.ndarray, stride: int, name: str) -> np.ndarray:
    view = validate_raw_landmarks(raw, stride, name).view()
    view.flags.writeable = False
    return view


class _KeypointSequence(Sequence):
    """Common indexing for the 2D and 3D views"""

    def __len__(self) -> int:
        return NUM_KEYPOINTS

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self._entry(i) for i in range(*index.indices(NUM_KEYPOINTS))]
        index = int(index)
        if index < 0:
            index += NUM_KEYPOINTS
        if not 0 <= index < NUM_KEYPOINTS:
            raise IndexError(f"Keypoint index out of range: {index}")
        return self._entry(index)

    @abstractmethod
    def _entry(self, index: int) -> Tuple[float, ...]:
        """Keypoint at a non-negative index"""

    def get(self, name: str) -> Tuple[float, ...]:
        """
        Keypoint by name, e.g. ``get("left_wrist")``

        Raises:
            KeyError: If name is not a BlazePose keypoint
        """
        try:
            index = KeypointIndex[name.upper()]
        except KeyError:
            raise KeyError(f"Unknown keypoint name: {name!r}") from None
        return self._entry(index)


def _add_named_accessors(cls):
    for kp in KeypointIndex:
        setattr(cls, kp.name.lower(), property(lambda self, i=int(kp): self._entry(i)))
    return cls


@_add_named_accessors
class Keypoints(_KeypointSequence):
    """
    33 keypoints in normalized image space

    Each entry is (x, y, depth, visibility): x and y normalized with the
    origin bottom-left, depth scaled to image units, visibility in [0, 1].

    Example:
        >>> nose = pose.keypoints.nose
        >>> pose.keypoints[KeypointIndex.NOSE] == nose
        True
    """

    def __init__(
        self,
        raw: np.ndarray,
        input_size: Tuple[int, int],
        transform: AffineTransform
    ):
        """
        Args:
            raw: Raw 2D landmarks (33 x 5 values), shared, not copied
            input_size: (width, height) of the predictor input
            transform: ROI -> normalized image transform

        Raises:
            CorruptModelOutput: If raw does not hold 33 x 5 values
        """
        self._raw = _shared_view(raw, KEYPOINT_STRIDE, "landmarks")
        self.input_size = tuple(input_size)
        self.transform = transform

    @property
    def raw(self) -> np.ndarray:
        return self._raw

    def _entry(self, index: int) -> Tuple[float, float, float, float]:
        return transform_keypoint(self._raw, index, self.input_size, self.transform)

    def to_array(self) -> np.ndarray:
        """(33, 4) array of (x, y, depth, visibility)"""
        return transform_keypoints(self._raw, self.input_size, self.transform)

    def to_pixels(self, img_width: int, img_height: int) -> np.ndarray:
        """(33, 2) pixel coordinates, origin top-left"""
        return keypoints_to_pixels(self.to_array(), img_width, img_height)

    def __repr__(self) -> str:
        return f"Keypoints(input_size={self.input_size}, transform={self.transform!r})"


@_add_named_accessors
class Keypoints3D(_KeypointSequence):
    """
    33 keypoints in hip-centered world space

    Each entry is (x, y, z) with y pointing up.
    """

    def __init__(self, raw: np.ndarray):
        """
        Args:
            raw: Raw 3D landmarks (33 x 3 values), shared, not copied

        Raises:
            CorruptModelOutput: If raw does not hold 33 x 3 values
        """
        self._raw = _shared_view(raw, KEYPOINT_3D_STRIDE, "3D landmarks")

    @property
    def raw(self) -> np.ndarray:
        return self._raw

    def _entry(self, index: int) -> Tuple[float, float, float]:
        return transform_keypoint_3d(self._raw, index)

    def to_array(self) -> np.ndarray:
        """(33, 3) array of (x, y, z)"""
        return transform_keypoints_3d(self._raw)

    def __repr__(self) -> str:
        return "Keypoints3D()"


@dataclass(frozen=True, eq=False)
class Pose:
    """
    A single detected pose

    Attributes:
        score: Pose confidence as emitted by the landmark model
        keypoints: 2D keypoints in normalized image space
        keypoints3d: 3D keypoints in world space
        landmarks: Raw landmarks backing both views
    """
    score: float
    keypoints: Keypoints
    keypoints3d: Keypoints3D
    landmarks: Optional["RawLandmarks"] = field(default=None, repr=False)

    @classmethod
    def from_landmarks(
        cls,
        landmarks: "RawLandmarks",
        input_size: Tuple[int, int],
        transform: AffineTransform
    ) -> "Pose":
        """
        Build a pose over raw predictor output

        Args:
            landmarks: RawLandmarks from BlazePosePredictor.predict
            input_size: (width, height) of the predictor input
            transform: ROI -> normalized image transform of the detection
        """
        return cls(
            score=float(landmarks.score),
            keypoints=Keypoints(landmarks.keypoints, input_size, transform),
            keypoints3d=Keypoints3D(landmarks.keypoints3d),
            landmarks=landmarks,
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable representation"""
        keypoints = {
            kp.name.lower(): dict(zip(("x", "y", "depth", "visibility"), map(float, row)))
            for kp, row in zip(KeypointIndex, self.keypoints.to_array())
        }
        keypoints3d = {
            kp.name.lower(): dict(zip(("x", "y", "z"), map(float, row)))
            for kp, row in zip(KeypointIndex, self.keypoints3d.to_array())
        }
        return {
            "score": float(self.score),
            "keypoints": keypoints,
            "keypoints3d": keypoints3d,
        }

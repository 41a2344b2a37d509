"""
Regions of interest and affine transforms

Provides:
- Region: axis-aligned rectangle in normalized image space
- AffineTransform: 3x3 homogeneous 2D transform
- region_to_image_transform: ROI unit square -> normalized image

Normalized image space has its origin at the bottom-left with y up. The
ROI unit square uses the same convention with the subject upright.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from ..core.exceptions import InvalidRegion

_SINGULAR_EPS = 1e-12


@dataclass(frozen=True)
class Region:
    """
    Rectangle in normalized image coordinates

    (x, y) is the lower-left corner; width and height are fractions of the
    image width and height.
    """
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_center(cls, cx: float, cy: float, width: float, height: float) -> "Region":
        return cls(cx - width / 2.0, cy - height / 2.0, width, height)

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    @property
    def is_valid(self) -> bool:
        values = (self.x, self.y, self.width, self.height)
        return all(math.isfinite(v) for v in values) and self.width > 0 and self.height > 0

    def validate(self) -> "Region":
        """Return self, or raise InvalidRegion for a degenerate region"""
        if not self.is_valid:
            raise InvalidRegion(
                f"Region must have finite, positive extents: {self}"
            )
        return self

    def to_pixels(self, image_width: int, image_height: int) -> Tuple[float, float, float, float]:
        """(x1, y1, x2, y2) in pixel space (origin top-left)"""
        x1 = self.x * image_width
        x2 = (self.x + self.width) * image_width
        y1 = (1.0 - self.y - self.height) * image_height
        y2 = (1.0 - self.y) * image_height
        return x1, y1, x2, y2


@dataclass(frozen=True, eq=False)
class AffineTransform:
    """
    2D affine transform stored as a 3x3 homogeneous matrix

    ``unit_scale`` optionally fixes the length one source unit maps to,
    for transforms whose matrix scales x and y differently (ROI -> normalized
    image on non-square images). Composition and inversion drop it.

    Example:
        >>> t = AffineTransform.translation(0.5, 0.0) @ AffineTransform.scaling(2, 2)
        >>> t.apply_point(1.0, 1.0)
        (2.5, 2.0)
    """
    matrix: np.ndarray
    unit_scale: Optional[float] = None

    def __post_init__(self):
        m = np.array(self.matrix, dtype=np.float64)
        if m.shape == (2, 3):
            m = np.vstack([m, [0.0, 0.0, 1.0]])
        if m.shape != (3, 3):
            raise ValueError(f"Affine matrix must be 2x3 or 3x3, got {m.shape}")
        m.flags.writeable = False
        object.__setattr__(self, "matrix", m)

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls(np.eye(3))

    @classmethod
    def translation(cls, tx: float, ty: float) -> "AffineTransform":
        return cls([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])

    @classmethod
    def scaling(cls, sx: float, sy: float) -> "AffineTransform":
        return cls([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]])

    @classmethod
    def rotation(cls, angle: float) -> "AffineTransform":
        """Counter-clockwise rotation in a y-up frame"""
        c, s = math.cos(angle), math.sin(angle)
        return cls([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])

    def compose(self, other: "AffineTransform") -> "AffineTransform":
        """Transform applying ``other`` first, then ``self``"""
        return AffineTransform(self.matrix @ other.matrix)

    def __matmul__(self, other: "AffineTransform") -> "AffineTransform":
        return self.compose(other)

    @property
    def determinant(self) -> float:
        return float(np.linalg.det(self.matrix[:2, :2]))

    @property
    def is_invertible(self) -> bool:
        return abs(self.determinant) > _SINGULAR_EPS

    def inverse(self) -> "AffineTransform":
        if not self.is_invertible:
            raise InvalidRegion("Transform is singular and cannot be inverted")
        return AffineTransform(np.linalg.inv(self.matrix))

    def apply(self, points: Union[np.ndarray, list]) -> np.ndarray:
        """Transform (..., 2) points"""
        points = np.asarray(points, dtype=np.float64)
        return points @ self.matrix[:2, :2].T + self.matrix[:2, 2]

    def apply_point(self, x: float, y: float) -> Tuple[float, float]:
        m = self.matrix
        return (
            float(m[0, 0] * x + m[0, 1] * y + m[0, 2]),
            float(m[1, 0] * x + m[1, 1] * y + m[1, 2]),
        )

    def depth_scale(self) -> float:
        """
        Length of the transformed unit-right vector

        Distance between the images of (0, 0) and (1, 0), or ``unit_scale``
        when set. Without ``unit_scale`` this assumes the transform scales
        uniformly; with non-uniform scale or shear it is only an
        approximation.
        """
        if self.unit_scale is not None:
            return float(self.unit_scale)
        return float(math.hypot(self.matrix[0, 0], self.matrix[1, 0]))

    def to_2x3(self) -> np.ndarray:
        return np.array(self.matrix[:2], dtype=np.float64)

    def __repr__(self) -> str:
        rows = ", ".join(
            "[" + ", ".join(f"{v:.6g}" for v in row) + "]" for row in self.matrix[:2]
        )
        return f"AffineTransform([{rows}])"


def normalize_radians(angle: float) -> float:
    """Wrap an angle into [-pi, pi)"""
    return angle - 2.0 * math.pi * math.floor((angle + math.pi) / (2.0 * math.pi))


def region_to_image_transform(
    region: Region,
    rotation: float,
    image_size: Tuple[int, int]
) -> AffineTransform:
    """
    Build the ROI -> normalized image transform

    A point of the ROI unit square is centered, scaled to the region's pixel
    extents, rotated by -rotation (rotation is positive for a subject tilted
    clockwise on screen), moved to the region center and normalized by the
    image size. Working in pixel units keeps rotation free of skew on
    non-square images.

    The final normalization scales x and y differently when width != height,
    so the depth scale is taken from the pixel-space transform instead: the
    rotated ROI-unit length in pixels over the image width. It equals the
    region width for any rotation.

    Args:
        region: ROI in normalized image space
        rotation: Subject rotation in radians
        image_size: (width, height) of the source image in pixels

    Returns:
        AffineTransform mapping ROI space to normalized image space

    Raises:
        InvalidRegion: If the region is degenerate
    """
    region.validate()
    image_width, image_height = image_size
    if image_width <= 0 or image_height <= 0:
        raise InvalidRegion(f"Image size must be positive, got {image_size}")

    cx, cy = region.center
    to_pixels = (
        AffineTransform.translation(cx * image_width, cy * image_height)
        @ AffineTransform.rotation(-rotation)
        @ AffineTransform.scaling(region.width * image_width, region.height * image_height)
        @ AffineTransform.translation(-0.5, -0.5)
    )
    normalized = AffineTransform.scaling(1.0 / image_width, 1.0 / image_height) @ to_pixels
    return AffineTransform(normalized.matrix, unit_scale=to_pixels.depth_scale() / image_width)


def region_corners(
    region: Region,
    rotation: float,
    image_size: Tuple[int, int]
) -> np.ndarray:
    """
    Corners of the rotated region in normalized image space

    Returns:
        (4, 2) array: bottom-left, bottom-right, top-right, top-left of the
        ROI unit square mapped into the image
    """
    transform = region_to_image_transform(region, rotation, image_size)
    return transform.apply([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])

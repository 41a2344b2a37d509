"""
ROI extraction: rotated crop + resample of a detected subject

Produces the aligned, upright crop fed to the landmark predictor, plus the
ROI -> image transform used later to map landmarks back.
"""

import logging
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from ..io.image import ImageFeature
from .region import AffineTransform, Region, region_to_image_transform

logger = logging.getLogger(__name__)


def _dst_pixel_to_roi(width: int, height: int) -> AffineTransform:
    # pixel centers of a (width, height) buffer -> ROI unit square, y up
    return AffineTransform([
        [1.0 / width, 0.0, 0.5 / width],
        [0.0, -1.0 / height, 1.0 - 0.5 / height],
        [0.0, 0.0, 1.0],
    ])


def _image_to_src_pixel(width: int, height: int) -> AffineTransform:
    # normalized image space, y up -> pixel centers, y down
    return AffineTransform([
        [float(width), 0.0, -0.5],
        [0.0, -float(height), height - 0.5],
        [0.0, 0.0, 1.0],
    ])


def extract_roi(
    image: ImageFeature,
    region: Region,
    rotation: float,
    fill_color: Sequence[float] = (0, 0, 0),
    output_size: Optional[Tuple[int, int]] = None
) -> Tuple[ImageFeature, AffineTransform]:
    """
    Extract a rotated, resampled region of interest

    Args:
        image: Source image
        region: ROI in normalized image space
        rotation: Subject rotation in radians (see region_to_image_transform)
        fill_color: Value for destination pixels that fall outside the source
        output_size: (width, height) of the ROI image. Defaults to the
            region's extent in source pixels.

    Returns:
        (roi_image, transform) where transform maps ROI space to normalized
        image space. The caller owns and must release roi_image.

    Raises:
        InvalidRegion: If the region is degenerate

    Example:
        >>> roi, transform = extract_roi(image, det.region, det.rotation, output_size=(256, 256))
        >>> with roi:
        ...     landmarks = predictor.predict(roi)
    """
    transform = region_to_image_transform(region, rotation, image.size)

    if output_size is None:
        output_size = (
            max(1, int(round(region.width * image.width))),
            max(1, int(round(region.height * image.height))),
        )
    dst_width, dst_height = output_size

    dst_to_src = (
        _image_to_src_pixel(image.width, image.height)
        @ transform
        @ _dst_pixel_to_roi(dst_width, dst_height)
    )

    pixels = image.data
    border = tuple(float(c) for c in fill_color)
    roi_pixels = cv2.warpAffine(
        np.ascontiguousarray(pixels),
        dst_to_src.to_2x3(),
        (dst_width, dst_height),
        flags=cv2.INTER_LINEAR | cv2.WARP_INVERSE_MAP,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=border,
    )

    logger.debug(
        "Extracted %dx%d ROI from %s (rotation=%.3f rad)",
        dst_width, dst_height, region, rotation,
    )
    roi = ImageFeature(roi_pixels, image.mean, image.std, image.aspect_mode)
    return roi, transform


class ROIExtractor:
    """
    Fixed-size ROI extraction with a fixed fill color

    Example:
        >>> extractor = ROIExtractor(output_size=(256, 256))
        >>> roi, transform = extractor.extract(image, detection.region, detection.rotation)
    """

    def __init__(
        self,
        output_size: Optional[Tuple[int, int]] = None,
        fill_color: Sequence[float] = (0, 0, 0)
    ):
        self.output_size = output_size
        self.fill_color = tuple(fill_color)

    def extract(
        self,
        image: ImageFeature,
        region: Region,
        rotation: float = 0.0
    ) -> Tuple[ImageFeature, AffineTransform]:
        return extract_roi(image, region, rotation, self.fill_color, self.output_size)

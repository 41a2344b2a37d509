"""
Image loading utilities for the BlazePose pipeline

Loads images from disk (OpenCV) into arrays or ImageFeatures ready for
the pipeline, with ImageLoadError on any failure.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from tqdm import tqdm

from ..core.constants import VALID_IMAGE_EXTENSIONS
from ..core.exceptions import ImageLoadError
from .image import AspectMode, ImageFeature

logger = logging.getLogger(__name__)


class ImageLoader:
    """
    Image loading with error handling

    The pipeline models expect RGB input, so ``rgb`` is the default color
    space here.
    """

    @staticmethod
    def load(image_path: str, color_space: str = 'rgb') -> np.ndarray:
        """
        Load a single image

        Args:
            image_path: Path to image file
            color_space: 'rgb' (default) or 'bgr' (OpenCV native)

        Returns:
            Image array (H, W, 3) uint8

        Raises:
            ImageLoadError: If the image cannot be loaded

        Example:
            >>> from blazepose.io import ImageLoader
            >>> img = ImageLoader.load("person.jpg")
            >>> print(img.shape)
            (480, 640, 3)
        """
        path = Path(image_path)

        if not path.exists():
            raise ImageLoadError(f"Image file not found: {image_path}")

        color_space = color_space.lower()
        if color_space not in ('rgb', 'bgr'):
            raise ImageLoadError(f"Unsupported color space: {color_space}")

        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if image is None:
            raise ImageLoadError(
                f"Failed to read image (corrupted or unsupported format): {image_path}"
            )

        if color_space == 'rgb':
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

        return image

    @staticmethod
    def load_feature(
        image_path: str,
        mean: Optional[Sequence[float]] = None,
        std: Optional[Sequence[float]] = None,
        aspect_mode: Optional[Union[AspectMode, str]] = None
    ) -> ImageFeature:
        """
        Load an RGB image as an ImageFeature

        Raises:
            ImageLoadError: If the image cannot be loaded
        """
        return ImageFeature(ImageLoader.load(image_path, 'rgb'), mean, std, aspect_mode)

    @staticmethod
    def load_batch(
        image_paths: List[str],
        color_space: str = 'rgb',
        show_progress: bool = True
    ) -> List[np.ndarray]:
        """
        Load multiple images with progress tracking

        Args:
            image_paths: List of image file paths
            color_space: 'rgb' or 'bgr'
            show_progress: Show progress bar

        Returns:
            List of image arrays, skipping failed images
        """
        images = []
        failed_count = 0

        iterator = tqdm(image_paths, desc="Loading images") if show_progress else image_paths

        for path in iterator:
            try:
                images.append(ImageLoader.load(path, color_space))
            except ImageLoadError as e:
                logger.warning(str(e))
                failed_count += 1

        if failed_count > 0:
            logger.warning(f"Failed to load {failed_count} images")

        return images

    @staticmethod
    def get_size(image_path: str) -> Tuple[int, int]:
        """
        Get image dimensions

        Returns:
            (width, height) tuple

        Raises:
            ImageLoadError: If the image cannot be read
        """
        img = cv2.imread(str(image_path))
        if img is None:
            raise ImageLoadError(f"Cannot read image: {image_path}")
        return img.shape[1], img.shape[0]

    @staticmethod
    def validate_format(image_path: str) -> bool:
        """True if the file extension is a supported image format"""
        return Path(image_path).suffix.lower() in VALID_IMAGE_EXTENSIONS

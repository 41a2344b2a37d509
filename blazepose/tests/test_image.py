"""
Tests for ImageFeature and image loading
"""

import numpy as np
import pytest


def test_image_feature_properties():
    """Test size, read-only data and release"""
    from blazepose.io.image import ImageFeature
    from blazepose.core.exceptions import InvalidInput

    array = np.zeros((100, 200, 3), dtype=np.uint8)
    feature = ImageFeature(array)
    assert feature.size == (200, 100)
    assert feature.width == 200 and feature.height == 100

    with pytest.raises(ValueError):
        feature.data[0, 0, 0] = 1

    feature.release()
    feature.release()
    assert feature.released
    with pytest.raises(InvalidInput):
        _ = feature.data
    print("✓ ImageFeature properties")


def test_image_feature_context_manager():
    """Test release on context exit, also on error"""
    from blazepose.io.image import ImageFeature

    with ImageFeature(np.zeros((4, 4, 3), dtype=np.uint8)) as feature:
        assert not feature.released
    assert feature.released

    other = ImageFeature(np.zeros((4, 4, 3), dtype=np.uint8))
    with pytest.raises(RuntimeError):
        with other:
            raise RuntimeError("boom")
    assert other.released


def test_image_feature_rejects_bad_arrays():
    """Test input validation"""
    from blazepose.io.image import ImageFeature
    from blazepose.core.exceptions import InvalidInput

    with pytest.raises(InvalidInput):
        ImageFeature(np.zeros((10, 10), dtype=np.uint8))
    with pytest.raises(InvalidInput):
        ImageFeature(np.zeros((10, 10, 4), dtype=np.uint8))
    with pytest.raises(InvalidInput):
        ImageFeature(np.zeros((0, 10, 3), dtype=np.uint8))
    with pytest.raises(InvalidInput):
        ImageFeature([[0, 0, 0]])


def test_to_tensor_normalization():
    """Test scaling and mean/std normalization"""
    from blazepose.io.image import ImageFeature

    feature = ImageFeature(np.full((32, 32, 3), 255, dtype=np.uint8))

    tensor = feature.to_tensor(16, 16, mean=(0.5, 0.5, 0.5), std=(0.5, 0.5, 0.5))
    assert tensor.shape == (1, 16, 16, 3)
    assert tensor.dtype == np.float32
    assert np.allclose(tensor, 1.0)

    tensor = feature.to_tensor(16, 8, channels_first=True)
    assert tensor.shape == (1, 3, 8, 16)
    assert np.allclose(tensor, 1.0)


def test_to_tensor_letterbox():
    """Test letterbox padding and its inverse"""
    from blazepose.io.image import ImageFeature, AspectMode

    feature = ImageFeature(np.full((100, 200, 3), 255, dtype=np.uint8))
    assert feature.aspect_params(224, 224, AspectMode.LETTERBOX) == (224, 112, 0, 56)

    tensor = feature.to_tensor(224, 224, aspect_mode="letterbox")[0]
    assert np.allclose(tensor[:56], 0.0)
    assert np.allclose(tensor[168:], 0.0)
    assert np.allclose(tensor[60:160], 1.0)

    points = feature.tensor_to_image(np.array([[0.5, 0.5], [0.0, 0.25]]), 224, 224, "letterbox")
    assert np.allclose(points, [[0.5, 0.5], [0.0, 0.0]])
    print("✓ Letterbox and inverse")


def test_to_tensor_crop_and_stretch():
    """Test crop offsets and stretch identity"""
    from blazepose.io.image import ImageFeature

    feature = ImageFeature(np.zeros((100, 200, 3), dtype=np.uint8))
    assert feature.aspect_params(100, 100, "crop") == (200, 100, -50, 0)
    assert feature.aspect_params(100, 100, "stretch") == (100, 100, 0, 0)
    assert feature.to_tensor(100, 100, aspect_mode="crop").shape == (1, 100, 100, 3)

    points = feature.tensor_to_image(np.array([[0.5, 0.5]]), 100, 100, "crop")
    assert np.allclose(points, [[0.5, 0.5]])

    # feature default is used when no override is given
    feature = ImageFeature(np.zeros((100, 200, 3), dtype=np.uint8), aspect_mode="letterbox")
    assert feature.aspect_params(100, 100) == (100, 50, 0, 25)


def test_single_image_input():
    """Test arity and type validation of stage inputs"""
    from blazepose.io.image import ImageFeature, single_image_input
    from blazepose.core.exceptions import InvalidInput

    array = np.zeros((8, 8, 3), dtype=np.uint8)

    with single_image_input((array,), "test") as feature:
        owned = feature
        assert feature.size == (8, 8)
    assert owned.released

    caller_owned = ImageFeature(array)
    with single_image_input((caller_owned,), "test") as feature:
        assert feature is caller_owned
    assert not caller_owned.released

    with pytest.raises(InvalidInput):
        with single_image_input((), "test"):
            pass
    with pytest.raises(InvalidInput):
        with single_image_input((array, array), "test"):
            pass
    with pytest.raises(InvalidInput):
        with single_image_input(("image.jpg",), "test"):
            pass

    caller_owned.release()
    with pytest.raises(InvalidInput):
        with single_image_input((caller_owned,), "test"):
            pass


def test_from_pil():
    """Test PIL conversion"""
    from PIL import Image
    from blazepose.io.image import ImageFeature

    image = Image.new("L", (20, 10), color=128)
    feature = ImageFeature.from_pil(image)
    assert feature.size == (20, 10)
    assert feature.data.shape == (10, 20, 3)
    assert int(feature.data[0, 0, 0]) == 128


def test_image_loader(tmp_path):
    """Test image loading round trip through OpenCV"""
    import cv2
    from blazepose.io.data_loader import ImageLoader
    from blazepose.core.exceptions import ImageLoadError

    bgr = np.zeros((12, 16, 3), dtype=np.uint8)
    bgr[..., 0] = 255  # blue
    path = tmp_path / "blue.png"
    cv2.imwrite(str(path), bgr)

    rgb = ImageLoader.load(str(path))
    assert rgb.shape == (12, 16, 3)
    assert rgb[0, 0].tolist() == [0, 0, 255]
    assert ImageLoader.load(str(path), "bgr")[0, 0].tolist() == [255, 0, 0]
    assert ImageLoader.get_size(str(path)) == (16, 12)

    with ImageLoader.load_feature(str(path)) as feature:
        assert feature.size == (16, 12)

    assert ImageLoader.validate_format("a.JPG")
    assert not ImageLoader.validate_format("a.txt")

    with pytest.raises(ImageLoadError):
        ImageLoader.load(str(tmp_path / "missing.png"))

    broken = tmp_path / "broken.png"
    broken.write_bytes(b"not an image")
    with pytest.raises(ImageLoadError):
        ImageLoader.load(str(broken))

    images = ImageLoader.load_batch([str(path), str(broken)], show_progress=False)
    assert len(images) == 1
    print("✓ ImageLoader")

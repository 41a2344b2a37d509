"""
Tests for keypoint transforms, keypoint views and Pose
"""

import json
import math

import numpy as np
import pytest


def _raw_2d(x=128.0, y=128.0, depth=0.0, visibility=0.0):
    raw = np.zeros((33, 5), dtype=np.float32)
    raw[:, 0] = x
    raw[:, 1] = y
    raw[:, 2] = depth
    raw[:, 3] = visibility
    return raw.reshape(-1)


def _full_image_transform(size=(256, 256)):
    from blazepose.roi.region import Region, region_to_image_transform
    return region_to_image_transform(Region(0, 0, 1, 1), 0.0, size)


def test_transform_keypoints_center():
    """Center of the ROI maps to the center of the image"""
    from blazepose.pose.keypoint_utils import transform_keypoints, transform_keypoint

    raw = _raw_2d()
    transform = _full_image_transform()

    keypoints = transform_keypoints(raw, (256, 256), transform)
    assert keypoints.shape == (33, 4)
    assert np.allclose(keypoints, [0.5, 0.5, 0.0, 0.5])

    assert transform_keypoint(raw, 0, (256, 256), transform) == pytest.approx((0.5, 0.5, 0.0, 0.5))
    with pytest.raises(IndexError):
        transform_keypoint(raw, 33, (256, 256), transform)
    print("✓ Keypoint center transform")


def test_transform_keypoints_flips_y_and_scales_depth():
    """Tensor rows grow downwards, normalized y grows upwards"""
    from blazepose.roi.region import Region, region_to_image_transform
    from blazepose.pose.keypoint_utils import transform_keypoints

    # top-left corner of the ROI tensor
    raw = _raw_2d(x=0.0, y=0.0, depth=10.0)
    keypoints = transform_keypoints(raw, (256, 256), _full_image_transform())
    assert keypoints[0, :2] == pytest.approx((0.0, 1.0))
    assert keypoints[0, 2] == pytest.approx(10.0)

    # half-size region halves depth on a square image
    transform = region_to_image_transform(Region.from_center(0.5, 0.5, 0.5, 0.5), 0.0, (256, 256))
    keypoints = transform_keypoints(raw, (256, 256), transform)
    assert keypoints[0, :2] == pytest.approx((0.25, 0.75))
    assert keypoints[0, 2] == pytest.approx(5.0)


def test_visibility_sigmoid():
    """Visibility is the logistic of the raw logit, bounded and monotonic"""
    from blazepose.pose.keypoint_utils import sigmoid, transform_keypoints

    logits = np.linspace(-50.0, 50.0, 33, dtype=np.float32)
    raw = _raw_2d().reshape(33, 5)
    raw[:, 3] = logits
    visibility = transform_keypoints(raw.reshape(-1), (256, 256), _full_image_transform())[:, 3]

    assert np.all(visibility >= 0.0) and np.all(visibility <= 1.0)
    assert np.all(np.diff(visibility) >= 0.0)
    assert sigmoid(0.0) == pytest.approx(0.5)
    assert sigmoid(2.0) == pytest.approx(1.0 / (1.0 + math.exp(-2.0)))


def test_transform_keypoints_3d():
    """3D keypoints keep x and z, negate y"""
    from blazepose.pose.keypoint_utils import transform_keypoints_3d, transform_keypoint_3d

    raw = np.tile(np.array([1.0, 2.0, 3.0], dtype=np.float32), 33)
    keypoints3d = transform_keypoints_3d(raw)
    assert keypoints3d.shape == (33, 3)
    assert np.allclose(keypoints3d, [1.0, -2.0, 3.0])
    assert transform_keypoint_3d(raw, 5) == pytest.approx((1.0, -2.0, 3.0))
    # the raw array is not modified
    assert raw[1] == pytest.approx(2.0)


def test_raw_landmark_length_checked():
    """Anything but 33 entries is a corrupt output"""
    from blazepose.pose.keypoint_utils import transform_keypoints, transform_keypoints_3d
    from blazepose.pose.keypoints import Keypoints, Keypoints3D
    from blazepose.core.exceptions import CorruptModelOutput

    short = np.zeros(32 * 5, dtype=np.float32)
    with pytest.raises(CorruptModelOutput):
        transform_keypoints(short, (256, 256), _full_image_transform())
    with pytest.raises(CorruptModelOutput):
        Keypoints(short, (256, 256), _full_image_transform())
    with pytest.raises(CorruptModelOutput):
        transform_keypoints_3d(np.zeros(34 * 3, dtype=np.float32))
    with pytest.raises(CorruptModelOutput):
        Keypoints3D(np.zeros(33 * 5, dtype=np.float32))


def test_keypoints_sequence_access():
    """Index, negative index, slice, name and attribute access agree"""
    from blazepose.pose.keypoints import Keypoints
    from blazepose.core.constants import KeypointIndex

    raw = _raw_2d().reshape(33, 5)
    raw[:, 0] = np.arange(33) * 4.0
    keypoints = Keypoints(raw.reshape(-1), (256, 256), _full_image_transform())
    array = keypoints.to_array()

    assert len(keypoints) == 33
    for i in (0, 15, 32):
        assert np.allclose(keypoints[i], array[i])
    assert np.allclose(keypoints[-1], array[32])
    assert np.allclose(keypoints[KeypointIndex.LEFT_WRIST], array[15])
    assert np.allclose(keypoints.left_wrist, array[15])
    assert np.allclose(keypoints.get("left_wrist"), array[15])
    assert np.allclose(keypoints.right_foot_index, array[32])

    window = keypoints[11:13]
    assert len(window) == 2
    assert np.allclose(window[0], array[11])

    with pytest.raises(IndexError):
        keypoints[33]
    with pytest.raises(KeyError):
        keypoints.get("tail")
    print("✓ Keypoints sequence access")


def test_keypoints_share_raw_buffer():
    """Views share the raw arrays, are read-only and computed on access"""
    from blazepose.pose.keypoints import Keypoints, Keypoints3D

    raw = _raw_2d()
    keypoints = Keypoints(raw, (256, 256), _full_image_transform())
    assert np.shares_memory(keypoints.raw, raw)
    assert not keypoints.raw.flags.writeable
    with pytest.raises(ValueError):
        keypoints.raw[0] = 1.0

    raw[0] = 64.0
    assert keypoints.nose[0] == pytest.approx(0.25)

    raw3d = np.zeros(33 * 3, dtype=np.float32)
    keypoints3d = Keypoints3D(raw3d)
    assert np.shares_memory(keypoints3d.raw, raw3d)
    assert not keypoints3d.raw.flags.writeable
    assert keypoints3d.nose == pytest.approx((0.0, 0.0, 0.0))


def test_pose_from_landmarks_and_dict():
    """Pose wraps raw landmarks and serializes to JSON"""
    from blazepose.pose.keypoints import Pose
    from blazepose.pose.predictor import RawLandmarks
    from blazepose.core.constants import KEYPOINT_NAMES

    landmarks = RawLandmarks(
        score=0.8,
        keypoints=_raw_2d(),
        keypoints3d=np.tile(np.array([0.1, 0.2, 0.3], dtype=np.float32), 33),
    )
    pose = Pose.from_landmarks(landmarks, (256, 256), _full_image_transform())

    assert pose.score == pytest.approx(0.8)
    assert pose.landmarks is landmarks
    assert np.shares_memory(pose.keypoints.raw, landmarks.keypoints)
    assert pose.keypoints3d.left_hip == pytest.approx((0.1, -0.2, 0.3))

    d = pose.to_dict()
    assert list(d["keypoints"]) == list(KEYPOINT_NAMES)
    assert d["keypoints"]["nose"]["visibility"] == pytest.approx(0.5)
    assert d["keypoints3d"]["nose"]["y"] == pytest.approx(-0.2)
    json.dumps(d)


def test_keypoints_to_pixels():
    """Normalized y-up coordinates map to top-left pixel coordinates"""
    from blazepose.pose.keypoint_utils import keypoints_to_pixels
    from blazepose.pose.keypoints import Keypoints
    from blazepose.core.constants import KeypointIndex

    keypoints = np.zeros((33, 4))
    keypoints[KeypointIndex.NOSE] = [0.5, 0.9, 0.0, 0.9]
    keypoints[KeypointIndex.LEFT_HIP] = [0.25, 0.0, 0.0, 0.8]

    pixels = keypoints_to_pixels(keypoints, 200, 100)
    assert pixels.shape == (33, 2)
    assert pixels[KeypointIndex.NOSE] == pytest.approx((100.0, 10.0))
    assert pixels[KeypointIndex.LEFT_HIP] == pytest.approx((50.0, 100.0))

    view = Keypoints(_raw_2d(), (256, 256), _full_image_transform())
    assert view.to_pixels(640, 480)[0] == pytest.approx((320.0, 240.0))


def test_keypoint_sequence_base_is_abstract():
    """A view without an entry accessor cannot be built"""
    from blazepose.pose.keypoints import _KeypointSequence

    with pytest.raises(TypeError):
        _KeypointSequence()

    class Constant(_KeypointSequence):
        def _entry(self, index):
            return (float(index),)

    sequence = Constant()
    assert sequence[-1] == (32.0,)
    assert len(sequence[:3]) == 3


def test_transform_keypoints_3d_random():
    """The 3D path only negates y, for arbitrary finite values"""
    from blazepose.pose.keypoint_utils import transform_keypoints_3d

    rng = np.random.RandomState(7)
    for _ in range(5):
        raw = rng.uniform(-100.0, 100.0, size=33 * 3).astype(np.float32)
        result = transform_keypoints_3d(raw)
        expected = raw.reshape(33, 3).astype(np.float64) * np.array([1.0, -1.0, 1.0])
        assert np.array_equal(result, expected)

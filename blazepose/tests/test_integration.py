"""
Integration tests for the BlazePose package

Tests:
- Config from YAML -> pipeline built around synthetic models
- Image on disk -> detector -> ROI -> landmarks -> poses
- Pose results -> CSV / JSON
"""

import json
import tempfile
from pathlib import Path

import numpy as np


def _upright_landmarks():
    from blazepose.tests.fakes import LANDMARK_SIZE, landmark_outputs

    keypoints = np.zeros((39, 5), dtype=np.float32)
    keypoints[:, :2] = LANDMARK_SIZE / 2
    keypoints[:, 3] = 5.0
    # head a quarter of the ROI above the hips, feet a quarter below
    keypoints[0, 1] = LANDMARK_SIZE / 4
    keypoints[31:33, 1] = LANDMARK_SIZE * 3 / 4
    return landmark_outputs(keypoints, score=0.95, auxiliary=6)


def test_config_to_pipeline():
    """Test pipeline construction from a YAML configuration"""
    from blazepose.core.config import BlazePoseConfig
    from blazepose.detection.detector import BlazePoseDetector
    from blazepose.pose.predictor import BlazePosePredictor
    from blazepose.pipeline import create_pipeline
    from blazepose.tests.fakes import detector_outputs, fake_model, person

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "config.yaml"
        path.write_text(
            "predictor:\n"
            "  auxiliary_landmarks: 6\n"
            "pipeline:\n"
            "  max_detections: 1\n"
        )
        config = BlazePoseConfig.from_yaml(str(path))

    detector = BlazePoseDetector(
        fake_model(detector_outputs([person(100, 8.0, (0.5, 0.5), (0.5, 0.25))])),
        config.detector,
    )
    predictor = BlazePosePredictor(fake_model(_upright_landmarks()), config.predictor)

    with create_pipeline(config, detector=detector, predictor=predictor) as pipeline:
        assert pipeline.max_detections == 1
        poses = pipeline.predict(np.zeros((224, 224, 3), dtype=np.uint8))

    assert len(poses) == 1
    pose = poses[0]
    assert abs(pose.score - 0.95) < 1e-6
    nose = pose.keypoints.nose
    foot = pose.keypoints.left_foot_index
    assert nose[1] > pose.keypoints.left_hip[1] > foot[1]
    assert nose[3] > 0.99
    print("✓ Config -> pipeline -> poses")


def test_image_file_to_results():
    """Test image loading, prediction and result export"""
    import cv2
    from blazepose.io.data_loader import ImageLoader
    from blazepose.io.csv_handler import CSVReader, CSVWriter, PoseRow, write_poses_json
    from blazepose.core.config import PredictorConfig
    from blazepose.detection.detector import BlazePoseDetector
    from blazepose.pose.predictor import BlazePosePredictor
    from blazepose.pipeline import BlazePosePipeline
    from blazepose.tests.fakes import detector_outputs, fake_model, person

    # wide image: the detector letterboxes it, poses come back over the full frame
    lying = person(100, 8.0, (0.5, 0.5), (0.75, 0.5))
    pipeline = BlazePosePipeline(
        BlazePoseDetector(fake_model(detector_outputs([lying]))),
        BlazePosePredictor(fake_model(_upright_landmarks()), PredictorConfig(auxiliary_landmarks=6)),
    )

    with tempfile.TemporaryDirectory() as tmpdir:
        image_path = Path(tmpdir) / "frame.jpg"
        cv2.imwrite(str(image_path), np.full((224, 448, 3), 90, dtype=np.uint8))

        with pipeline, ImageLoader.load_feature(str(image_path)) as image:
            assert image.size == (448, 224)
            poses = pipeline.predict(image)

        assert len(poses) == 1
        hip = poses[0].keypoints.left_hip
        nose = poses[0].keypoints.nose
        # quarter-turn clockwise: 70 px (a quarter of the 280 px ROI) right of the hips
        assert abs((nose[0] - hip[0]) * 448 - 70.0) < 1e-2
        assert abs(nose[1] - hip[1]) < 1e-4

        rows = [PoseRow.from_pose("frame.jpg", i, p) for i, p in enumerate(poses)]
        CSVWriter.write_poses(str(Path(tmpdir) / "poses.csv"), rows)
        write_poses_json(str(Path(tmpdir) / "poses.json"), {"frame.jpg": poses})

        loaded = CSVReader.read_poses(str(Path(tmpdir) / "poses.csv"))
        assert len(loaded["frame.jpg"]) == 1
        data = json.loads((Path(tmpdir) / "poses.json").read_text())
        assert len(data["frame.jpg"][0]["keypoints"]) == 33

    assert pipeline.closed
    print("✓ Image file -> poses -> CSV/JSON")


def test_constants_and_exceptions():
    """Test keypoint names and exception formatting"""
    from blazepose import KEYPOINT_NAMES, KeypointIndex, InvalidInput
    from blazepose.core.exceptions import handle_blazepose_exception

    assert len(KEYPOINT_NAMES) == 33
    assert KeypointIndex.LEFT_HIP == 23 and KeypointIndex.RIGHT_HIP == 24
    assert handle_blazepose_exception(InvalidInput("two images"), verbose=False) == \
        "[InvalidInput] two images"
    print("✓ Constants and exceptions")


def run_all_tests():
    """Run all integration tests"""
    print("=" * 70)
    print("BlazePose Package Integration Tests")
    print("=" * 70)

    tests = [
        ("Config To Pipeline", test_config_to_pipeline),
        ("Image File To Results", test_image_file_to_results),
        ("Constants And Exceptions", test_constants_and_exceptions),
    ]

    passed = 0
    failed = 0

    for test_name, test_func in tests:
        try:
            print(f"\n{test_name}:")
            test_func()
            passed += 1
        except Exception as e:
            print(f"✗ {test_name} failed: {e}")
            failed += 1

    print("\n" + "=" * 70)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 70)

    return failed == 0


if __name__ == '__main__':
    import sys
    success = run_all_tests()
    sys.exit(0 if success else 1)

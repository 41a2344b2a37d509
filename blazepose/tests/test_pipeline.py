"""
Tests for the two-stage pipeline
"""

import threading
import time

import numpy as np
import pytest

from blazepose.tests.fakes import (
    LANDMARK_SIZE,
    Recorder,
    detector_outputs,
    fake_model,
    landmark_outputs,
    make_detector,
    make_pipeline,
    make_predictor,
    person,
    square_image,
)

UPRIGHT = person(100, 8.0, (0.5, 0.5), (0.5, 0.25))

THREE_PEOPLE = [
    person(0, 4.0, (0.2, 0.5), (0.2, 0.3)),
    person(100, 8.0, (0.5, 0.5), (0.5, 0.3)),
    person(200, 6.0, (0.8, 0.5), (0.8, 0.3)),
]


def test_pipeline_no_detections():
    """No people: empty result, landmark model never runs"""
    predictor_recorder = Recorder()
    with make_pipeline([], predictor_recorder=predictor_recorder) as pipeline:
        assert pipeline.predict(square_image()) == []
    assert predictor_recorder.tensors == []


def test_pipeline_single_pose_geometry():
    """Landmarks are mapped through the detection's ROI"""
    keypoints = np.zeros((33, 5), dtype=np.float32)
    keypoints[:, :2] = LANDMARK_SIZE / 2
    keypoints[0, 1] = LANDMARK_SIZE / 4  # nose above the ROI center

    predictor_recorder = Recorder()
    with make_pipeline([UPRIGHT], landmark_outputs(keypoints),
                       predictor_recorder=predictor_recorder) as pipeline:
        poses = pipeline.predict(square_image())

    assert len(poses) == 1
    pose = poses[0]
    assert pose.score == pytest.approx(0.9)
    assert predictor_recorder.tensors[0].shape == (1, LANDMARK_SIZE, LANDMARK_SIZE, 3)

    # ROI center is the mid-hip
    assert pose.keypoints.left_hip[:2] == pytest.approx((0.5, 0.5), abs=1e-5)
    # a quarter of the ROI above its center: 0.25 * 0.625 of the image
    assert pose.keypoints.nose[:2] == pytest.approx((0.5, 0.65625), abs=1e-5)
    assert pose.keypoints.nose[3] == pytest.approx(0.5)
    assert len(pose.keypoints3d) == 33
    print("✓ Pipeline geometry")


def test_pipeline_rotated_subject():
    """Upright ROI rows map onto the rotated subject"""
    keypoints = np.zeros((33, 5), dtype=np.float32)
    keypoints[:, :2] = LANDMARK_SIZE / 2
    keypoints[0, 1] = LANDMARK_SIZE / 4

    lying = person(100, 8.0, (0.5, 0.5), (0.75, 0.5))
    with make_pipeline([lying], landmark_outputs(keypoints)) as pipeline:
        pose = pipeline.predict(square_image())[0]

    # head toward the full-body point, to the right of the hips
    assert pose.keypoints.nose[:2] == pytest.approx((0.65625, 0.5), abs=1e-5)


def test_pipeline_detection_order_and_limit():
    """Poses follow detector order; max_detections keeps the first ones"""
    landmarks = landmark_outputs()

    with make_pipeline(THREE_PEOPLE, landmarks) as pipeline:
        poses = pipeline.predict(square_image())
    assert [round(p.keypoints.left_hip[0], 3) for p in poses] == [0.5, 0.8, 0.2]

    predictor_recorder = Recorder()
    with make_pipeline(THREE_PEOPLE, landmarks, max_detections=1,
                       predictor_recorder=predictor_recorder) as pipeline:
        poses = pipeline.predict(square_image())
    assert len(poses) == 1
    assert poses[0].keypoints.left_hip[0] == pytest.approx(0.5, abs=1e-5)
    assert len(predictor_recorder.tensors) == 1

    detector_recorder = Recorder()
    predictor_recorder = Recorder()
    with make_pipeline(THREE_PEOPLE, landmarks, max_detections=0,
                       detector_recorder=detector_recorder,
                       predictor_recorder=predictor_recorder) as pipeline:
        assert pipeline.predict(square_image()) == []
    assert len(detector_recorder.tensors) == 1
    assert predictor_recorder.tensors == []


def test_pipeline_releases_roi_on_failure(monkeypatch):
    """The ROI buffer is released even when the landmark model fails"""
    import blazepose.roi.extractor as extractor_module
    from blazepose.io.image import ImageFeature
    from blazepose.core.exceptions import InferenceFailure

    extracted = []
    original = extractor_module.extract_roi

    def recording_extract_roi(*args, **kwargs):
        roi, transform = original(*args, **kwargs)
        extracted.append(roi)
        return roi, transform

    monkeypatch.setattr(extractor_module, "extract_roi", recording_extract_roi)

    image = ImageFeature(square_image())
    with make_pipeline([UPRIGHT], RuntimeError("landmark model crashed")) as pipeline:
        with pytest.raises(InferenceFailure):
            pipeline.predict(image)

    assert len(extracted) == 1
    assert extracted[0].released
    # caller-owned input is left alone
    assert not image.released
    image.release()


def test_pipeline_invalid_input():
    """Arity, type and closed-pipeline checks"""
    from blazepose.core.exceptions import InvalidInput

    pipeline = make_pipeline([UPRIGHT])
    with pytest.raises(InvalidInput):
        pipeline.predict()
    with pytest.raises(InvalidInput):
        pipeline.predict(square_image(), square_image())
    with pytest.raises(InvalidInput):
        pipeline.predict("person.jpg")

    pipeline.close()
    with pytest.raises(InvalidInput):
        pipeline.predict(square_image())


def test_pipeline_close_is_idempotent():
    """Both models are released exactly once"""
    detector_recorder = Recorder()
    predictor_recorder = Recorder()
    pipeline = make_pipeline([UPRIGHT], detector_recorder=detector_recorder,
                             predictor_recorder=predictor_recorder)
    pipeline.close()
    pipeline.close()
    assert pipeline.closed
    assert pipeline.detector.closed and pipeline.predictor.closed
    assert detector_recorder.closed == 1
    assert predictor_recorder.closed == 1


def test_pipeline_predict_batch():
    """One pose list per input image"""
    with make_pipeline([UPRIGHT]) as pipeline:
        results = pipeline.predict_batch([square_image(), square_image(value=10)],
                                         show_progress=False)
    assert len(results) == 2
    assert all(len(poses) == 1 for poses in results)


def test_pipeline_serializes_concurrent_calls():
    """Concurrent predict calls never run a model reentrantly"""
    active = []
    overlaps = []
    outputs = detector_outputs([UPRIGHT])

    def slow_detector(tensor):
        active.append(tensor)
        if len(active) > 1:
            overlaps.append(len(active))
        time.sleep(0.005)
        active.pop()
        return outputs

    from blazepose.detection.detector import BlazePoseDetector
    from blazepose.pipeline import BlazePosePipeline

    pipeline = BlazePosePipeline(BlazePoseDetector(fake_model(slow_detector)), make_predictor())
    results = []

    def worker():
        results.append(pipeline.predict(square_image()))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    pipeline.close()

    assert overlaps == []
    assert len(results) == 4
    assert all(len(poses) == 1 for poses in results)


def test_pipeline_rejects_negative_limit():
    from blazepose.pipeline import BlazePosePipeline

    with pytest.raises(ValueError):
        BlazePosePipeline(make_detector([]), make_predictor(), max_detections=-1)


def test_create_pipeline_with_injected_stages():
    """Injected stages are used as-is; limit falls back to the config"""
    from blazepose.core.config import BlazePoseConfig
    from blazepose.pipeline import create_pipeline

    config = BlazePoseConfig()
    config.pipeline.max_detections = 2
    config.pipeline.fill_color = (1, 2, 3)

    detector, predictor = make_detector([UPRIGHT]), make_predictor()
    with create_pipeline(config, detector=detector, predictor=predictor) as pipeline:
        assert pipeline.detector is detector
        assert pipeline.predictor is predictor
        assert pipeline.max_detections == 2
        assert pipeline.fill_color == (1, 2, 3)
        assert pipeline.extractor.output_size == predictor.input_size

    pipeline = create_pipeline(config, make_detector([]), make_predictor(), max_detections=1)
    assert pipeline.max_detections == 1
    pipeline.close()


def test_create_pipeline_cleans_up_on_failure(monkeypatch):
    """A detector built by create_pipeline is closed if the predictor fails to load"""
    from blazepose.detection.detector import BlazePoseDetector
    from blazepose.pose.predictor import BlazePosePredictor
    from blazepose.pipeline import create_pipeline
    from blazepose.core.exceptions import ModelLoadError

    detector_recorder = Recorder()
    built = make_detector([], detector_recorder)

    def failing_predictor(cls, config):
        raise ModelLoadError("landmark model missing")

    monkeypatch.setattr(BlazePoseDetector, "from_config", classmethod(lambda cls, config: built))
    monkeypatch.setattr(BlazePosePredictor, "from_config", classmethod(failing_predictor))

    with pytest.raises(ModelLoadError):
        create_pipeline()
    assert detector_recorder.closed == 1

    # an injected detector stays with the caller
    injected_recorder = Recorder()
    injected = make_detector([], injected_recorder)
    with pytest.raises(ModelLoadError):
        create_pipeline(detector=injected)
    assert injected_recorder.closed == 0
    injected.close()


def test_create_pipeline_missing_models(tmp_path):
    """Loading from paths that do not exist raises ModelLoadError"""
    from blazepose.core.config import BlazePoseConfig
    from blazepose.pipeline import create_pipeline
    from blazepose.core.exceptions import ModelLoadError

    config = BlazePoseConfig()
    config.detector.model_path = str(tmp_path / "pose_detection.onnx")
    config.predictor.model_path = str(tmp_path / "pose_landmark_full.onnx")
    with pytest.raises(ModelLoadError):
        create_pipeline(config)

"""
Command line entry points

blazepose-predict: run the two-stage pipeline over images and save
poses as JSON / CSV and annotated images.

Example:
    blazepose-predict person.jpg --detector pose_detection.onnx \\
        --predictor pose_landmark_full.onnx --out-json poses.json
"""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .core.config import BlazePoseConfig
from .core.exceptions import BlazePoseException, handle_blazepose_exception
from .core.logging_utils import setup_logging
from .io.csv_handler import CSVWriter, PoseRow, write_poses_json
from .io.data_loader import ImageLoader
from .pipeline import create_pipeline
from .visualization.drawer import draw_poses

logger = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return number


def build_predict_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blazepose-predict",
        description="Estimate BlazePose keypoints on images",
    )
    parser.add_argument("images", nargs="+", help="Input image paths")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--detector", default=None, help="Detector model (.onnx)")
    parser.add_argument("--predictor", default=None, help="Landmark model (.onnx)")
    parser.add_argument("--max-detections", type=_non_negative_int, default=None,
                        help="Maximum number of poses per image")
    parser.add_argument("--out-json", default=None, help="Write poses to this JSON file")
    parser.add_argument("--out-csv", default=None, help="Write poses to this CSV file")
    parser.add_argument("--out-dir", default=None, help="Directory for annotated images")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level (overrides config)")
    return parser


def _load_config(args: argparse.Namespace) -> BlazePoseConfig:
    config = BlazePoseConfig.from_yaml(args.config) if args.config else BlazePoseConfig()
    config = BlazePoseConfig.from_env(config)

    if args.detector:
        config.detector.model_path = args.detector
    if args.predictor:
        config.predictor.model_path = args.predictor
    if args.max_detections is not None:
        config.pipeline.max_detections = args.max_detections
    if args.log_level:
        config.logging.level = args.log_level
    return config


def predict_main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point of ``blazepose-predict``

    Returns:
        0 on success, 1 on any pipeline error
    """
    args = build_predict_parser().parse_args(argv)

    try:
        config = _load_config(args)
        setup_logging(config.logging)

        results = {}
        rows = []
        out_dir = Path(args.out_dir) if args.out_dir else None
        if out_dir is not None:
            out_dir.mkdir(parents=True, exist_ok=True)

        with create_pipeline(config) as pipeline:
            for image_path in tqdm(args.images, desc="Estimating poses"):
                image_name = Path(image_path).name
                with ImageLoader.load_feature(image_path) as image:
                    poses = pipeline.predict(image)

                results[image_name] = poses
                rows.extend(PoseRow.from_pose(image_name, i, pose) for i, pose in enumerate(poses))
                logger.info(f"{image_name}: {len(poses)} poses")

                if out_dir is not None:
                    import cv2

                    canvas = draw_poses(ImageLoader.load(image_path, 'bgr'), poses)
                    cv2.imwrite(str(out_dir / image_name), canvas)

        if args.out_json:
            write_poses_json(args.out_json, results)
            logger.info(f"Saved poses to {args.out_json}")
        if args.out_csv:
            CSVWriter.write_poses(args.out_csv, rows)
            logger.info(f"Saved pose rows to {args.out_csv}")

    except BlazePoseException as e:
        handle_blazepose_exception(e)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(predict_main())

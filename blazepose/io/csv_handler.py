"""
Pose result I/O for the BlazePose pipeline

Provides:
- PoseRow: one CSV row per pose (33 x 2D and 33 x 3D keypoints)
- CSVWriter / CSVReader for pose rows
- write_poses_json for per-image pose dicts
"""

import csv
import json
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np

from ..core.constants import CSV_POSE_COLUMNS, KEYPOINT_NAMES, NUM_KEYPOINTS
from ..core.exceptions import DataLoadError

_COORDS_2D = ('x', 'y', 'depth', 'visibility')
_COORDS_3D = ('x', 'y', 'z')


@dataclass
class PoseRow:
    """
    Dataclass for pose estimation result rows

    keypoints is (33, 4) (x, y, depth, visibility) in normalized image
    space; keypoints3d is (33, 3) in world space.
    """
    image_name: str
    pose_index: int
    score: float
    keypoints: np.ndarray
    keypoints3d: np.ndarray

    def __post_init__(self):
        self.keypoints = np.asarray(self.keypoints, dtype=np.float64).reshape(NUM_KEYPOINTS, 4)
        self.keypoints3d = np.asarray(self.keypoints3d, dtype=np.float64).reshape(NUM_KEYPOINTS, 3)

    @classmethod
    def from_pose(cls, image_name: str, pose_index: int, pose) -> "PoseRow":
        """Create a row from a Pose"""
        return cls(
            image_name=image_name,
            pose_index=pose_index,
            score=float(pose.score),
            keypoints=pose.keypoints.to_array(),
            keypoints3d=pose.keypoints3d.to_array(),
        )

    @classmethod
    def from_dict(cls, d: Dict) -> "PoseRow":
        """Create instance from a CSV dict row"""
        keypoints = [
            [float(d[f'{name}_{coord}']) for coord in _COORDS_2D]
            for name in KEYPOINT_NAMES
        ]
        keypoints3d = [
            [float(d[f'{name}_3d_{coord}']) for coord in _COORDS_3D]
            for name in KEYPOINT_NAMES
        ]
        return cls(
            image_name=d['image_name'],
            pose_index=int(d['pose_index']),
            score=float(d['score']),
            keypoints=keypoints,
            keypoints3d=keypoints3d,
        )

    def to_dict(self) -> Dict:
        """Convert to a flat dict keyed by CSV column"""
        d = {
            'image_name': self.image_name,
            'pose_index': self.pose_index,
            'score': self.score,
        }
        for name, row in zip(KEYPOINT_NAMES, self.keypoints):
            for coord, value in zip(_COORDS_2D, row):
                d[f'{name}_{coord}'] = float(value)
        for name, row in zip(KEYPOINT_NAMES, self.keypoints3d):
            for coord, value in zip(_COORDS_3D, row):
                d[f'{name}_3d_{coord}'] = float(value)
        return d


class CSVWriter:
    """CSV writing for pose results"""

    @staticmethod
    def write_poses(output_path: str, poses: Sequence[PoseRow]) -> None:
        """
        Write pose rows to CSV (header always written)

        Args:
            output_path: Path to output CSV file
            poses: PoseRow instances

        Example:
            >>> rows = [PoseRow.from_pose("img1.jpg", i, p) for i, p in enumerate(poses)]
            >>> CSVWriter.write_poses("poses.csv", rows)
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=list(CSV_POSE_COLUMNS))
            writer.writeheader()
            for pose in poses:
                writer.writerow(pose.to_dict())


class CSVReader:
    """CSV reading for pose results"""

    @staticmethod
    def read_poses(csv_path: str, min_score: float = float('-inf')) -> Dict[str, List[PoseRow]]:
        """
        Read pose rows from CSV, grouped by image name

        Args:
            csv_path: Path to pose CSV file
            min_score: Rows with a lower score are skipped

        Returns:
            Dictionary mapping image_name to its PoseRows in file order

        Raises:
            DataLoadError: If the CSV is missing or malformed
        """
        csv_path = Path(csv_path)

        if not csv_path.exists():
            raise DataLoadError(f"CSV file not found: {csv_path}")

        poses_by_image = defaultdict(list)

        try:
            with open(csv_path, 'r', newline='') as f:
                reader = csv.DictReader(f)
                for row in reader:
                    pose = PoseRow.from_dict(row)
                    if pose.score < min_score:
                        continue
                    poses_by_image[pose.image_name].append(pose)
        except (KeyError, ValueError, csv.Error) as e:
            raise DataLoadError(f"Failed to read pose CSV: {e}") from e

        return dict(poses_by_image)


def write_poses_json(output_path: str, poses_by_image: Mapping[str, Sequence]) -> None:
    """
    Write poses as JSON: {image_name: [pose.to_dict(), ...]}

    Args:
        output_path: Path to output JSON file
        poses_by_image: Mapping of image name to Pose list
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        image_name: [pose.to_dict() for pose in poses]
        for image_name, poses in poses_by_image.items()
    }
    with open(output_path, 'w') as f:
        json.dump(payload, f, indent=2)

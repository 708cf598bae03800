# Copyright 2025-2026 Dimensional Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from collections.abc import Sequence

import numpy as np
from scipy.spatial.transform import Rotation as R


def pose_from_xyz_rpy(
    xyz: Sequence[float], rpy: Sequence[float] = (0.0, 0.0, 0.0)
) -> np.ndarray:
    """
    Build a 4x4 homogeneous transform from a position and roll/pitch/yaw.

    Args:
        xyz: Translation (x, y, z)
        rpy: Rotation about fixed x, y, z axes in radians

    Returns:
        4x4 transformation matrix
    """
    T = np.eye(4)
    T[:3, :3] = R.from_euler("xyz", rpy).as_matrix()
    T[:3, 3] = xyz
    return T


def pose_to_xyz_rpy(T: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Split a 4x4 transform into translation and roll/pitch/yaw."""
    return T[:3, 3].copy(), R.from_matrix(T[:3, :3]).as_euler("xyz")


def perturb_pose(
    pose: np.ndarray, translation: Sequence[float], rpy: Sequence[float]
) -> np.ndarray:
    """
    Offset a pose in the world frame.

    The translation is added to the position and the rotation is applied as
    Rz(yaw) * Ry(pitch) * Rx(roll) on top of the pose's own rotation.
    """
    T = pose.copy()
    T[:3, 3] += translation
    offset = R.from_euler("ZYX", [rpy[2], rpy[1], rpy[0]])
    T[:3, :3] = offset.as_matrix() @ pose[:3, :3]
    return T


def position_distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(a[:3, 3] - b[:3, 3]))

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

"""
Kinematics Utilities

Stateless helpers shared by the controller and the kinematics adapters.

## Functions

- damped_pseudoinverse(): Damped least-squares inverse of a Jacobian
- get_manipulability(): Yoshikawa manipulability measure
- compute_pose_delta(): Task-space delta between two poses
- scale_to_step(): Velocity command of fixed magnitude (zero on arrival)
- require_finite(): Reject NaN/inf values coming from an adapter
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from kincheck.control.spec.types import ContractViolationError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from kincheck.control.spec import Configuration, Jacobian, Pose, Twist


def damped_pseudoinverse(
    J: Jacobian,
    damping: float = 0.0,
) -> NDArray[np.float64]:
    """Compute the damped pseudoinverse of a Jacobian.

    Uses J_pinv = J^T @ (J @ J^T + λ²I)^(-1). With zero damping this falls
    back to the Moore-Penrose pseudoinverse, which stays defined for rank
    deficient Jacobians.

    Args:
        J: m x n Jacobian
        damping: Damping factor λ

    Returns:
        n x m pseudoinverse
    """
    if damping == 0.0:
        return np.linalg.pinv(J)
    JJT = J @ J.T
    I = np.eye(JJT.shape[0])
    result: NDArray[np.float64] = J.T @ np.linalg.inv(JJT + damping**2 * I)
    return result


def get_manipulability(J: Jacobian) -> float:
    """Yoshikawa manipulability w = sqrt(det(J @ J^T)).

    Pass only the task rows the chain can act in; an all-zero row makes w zero.
    """
    if J.size == 0:
        return 0.0
    det = np.linalg.det(J @ J.T)
    return float(np.sqrt(max(0.0, det)))


def compute_pose_delta(
    current_pose: Pose,
    target_pose: Pose,
) -> Twist:
    """Compute the task-space delta that moves current_pose onto target_pose.

    Linear part is the difference of origins. Angular part is the axis-angle
    vector of R_target @ R_current^T, both in the world frame.

    Returns:
        6D vector [dx, dy, dz, rx, ry, rz]
    """
    linear = target_pose[:3, 3] - current_pose[:3, 3]

    R_error = target_pose[:3, :3] @ current_pose[:3, :3].T
    cos_angle = np.clip((np.trace(R_error) - 1) / 2, -1, 1)
    angle = float(np.arccos(cos_angle))

    if angle < 1e-9:
        angular = np.zeros(3)
    elif angle > np.pi - 1e-6:
        # Axis from the diagonal; the skew part vanishes at 180 degrees
        diag = np.diag(R_error)
        idx = int(np.argmax(diag))
        axis = np.zeros(3)
        axis[idx] = np.sqrt((diag[idx] + 1) / 2)
        for j in range(3):
            if j != idx:
                axis[j] = R_error[idx, j] / (2 * axis[idx])
        angular = axis / np.linalg.norm(axis) * angle
    else:
        axis = np.array(
            [
                R_error[2, 1] - R_error[1, 2],
                R_error[0, 2] - R_error[2, 0],
                R_error[1, 0] - R_error[0, 1],
            ]
        ) / (2 * np.sin(angle))
        angular = axis * angle

    twist: NDArray[np.float64] = np.concatenate([linear, angular])
    return twist


def scale_to_step(q_dot: Configuration, delta: float) -> Configuration:
    """Scale a joint velocity to magnitude delta.

    Returns the zero vector when ||q_dot|| < delta, which is the arrival signal.
    """
    norm = float(np.linalg.norm(q_dot))
    if norm < delta:
        return np.zeros_like(q_dot)
    return q_dot / norm * delta


def require_finite(values: NDArray[np.float64] | float, what: str) -> None:
    """Raise ContractViolationError if values contain NaN or inf."""
    if not np.all(np.isfinite(values)):
        raise ContractViolationError(f"Adapter returned non-finite {what}: {values}")

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

"""Reference kinematics and collision backends.

Analytic models that implement KinematicsSpec and CollisionDetectorSpec without
a physics engine. They back the CLI and the tests; real deployments plug in
their own robot model and scene.

- PlanarArmKinematics: N-link revolute arm moving in the XY plane
- CartesianGantryKinematics: 1-3 prismatic joints along x, y, z
- DiscCollisionWorld: circular obstacles in the XY plane
- EmptyScene: no obstacles at all
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from kincheck.control.utils.kinematics_utils import damped_pseudoinverse, get_manipulability

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from kincheck.control.spec import (
        CollisionPair,
        Configuration,
        Jacobian,
        PartId,
        Pose,
        Twist,
    )

# Rows of a 6 x n Jacobian a planar arm can move in: vx, vy, wz
_PLANAR_ROWS = [0, 1, 5]


def _limits(
    dof: int,
    lower: Sequence[float] | None,
    upper: Sequence[float] | None,
    default: float,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    lo = np.full(dof, -default) if lower is None else np.asarray(lower, dtype=np.float64)
    hi = np.full(dof, default) if upper is None else np.asarray(upper, dtype=np.float64)
    if lo.shape != (dof,) or hi.shape != (dof,):
        raise ValueError(f"Joint limits must have {dof} entries")
    if np.any(lo > hi):
        raise ValueError("Lower joint limits exceed upper joint limits")
    return lo, hi


class PlanarArmKinematics:
    """Serial chain of revolute joints about z, links along the local x axis."""

    def __init__(
        self,
        link_lengths: Sequence[float],
        joint_limits_lower: Sequence[float] | None = None,
        joint_limits_upper: Sequence[float] | None = None,
        damping: float = 0.0,
    ):
        self.link_lengths = np.asarray(link_lengths, dtype=np.float64)
        if self.link_lengths.ndim != 1 or len(self.link_lengths) == 0:
            raise ValueError("At least one link length is required")
        if np.any(self.link_lengths <= 0):
            raise ValueError("Link lengths must be positive")
        self.lower, self.upper = _limits(
            len(self.link_lengths), joint_limits_lower, joint_limits_upper, np.pi
        )
        self._damping = damping

    @property
    def dof(self) -> int:
        return len(self.link_lengths)

    @property
    def reach(self) -> float:
        return float(self.link_lengths.sum())

    def joint_positions(self, config: Configuration) -> NDArray[np.float64]:
        """XY positions of the base, every joint and the tip, shape (dof + 1, 2)."""
        angles = np.cumsum(config)
        steps = self.link_lengths[:, None] * np.column_stack([np.cos(angles), np.sin(angles)])
        return np.vstack([np.zeros(2), np.cumsum(steps, axis=0)])

    def forward_pose(self, config: Configuration) -> Pose:
        theta = float(np.sum(config))
        tip = self.joint_positions(config)[-1]
        pose = np.eye(4)
        pose[:2, :2] = [[np.cos(theta), -np.sin(theta)], [np.sin(theta), np.cos(theta)]]
        pose[:2, 3] = tip
        return pose

    def jacobian(self, config: Configuration) -> Jacobian:
        points = self.joint_positions(config)
        tip = points[-1]
        J = np.zeros((6, self.dof))
        for i in range(self.dof):
            # z x (tip - joint_i)
            dx, dy = tip - points[i]
            J[0, i] = -dy
            J[1, i] = dx
            J[5, i] = 1.0
        return J

    def jacobian_inverse(self, config: Configuration) -> Jacobian:
        return damped_pseudoinverse(self.jacobian(config), self._damping)

    def inverse_velocity(self, config: Configuration, twist: Twist) -> Configuration:
        return self.jacobian_inverse(config) @ np.asarray(twist, dtype=np.float64)

    def manipulability(self, config: Configuration) -> float:
        return get_manipulability(self.jacobian(config)[_PLANAR_ROWS])

    def is_within_joint_limits(self, config: Configuration) -> bool:
        return bool(np.all(config >= self.lower) and np.all(config <= self.upper))


class CartesianGantryKinematics:
    """Prismatic joints along x, y and z (in that order), tool frame unrotated."""

    def __init__(
        self,
        dof: int = 3,
        joint_limits_lower: Sequence[float] | None = None,
        joint_limits_upper: Sequence[float] | None = None,
    ):
        if not 1 <= dof <= 3:
            raise ValueError(f"A gantry has 1 to 3 axes, got {dof}")
        self._dof = dof
        self.lower, self.upper = _limits(dof, joint_limits_lower, joint_limits_upper, np.inf)

    @property
    def dof(self) -> int:
        return self._dof

    def forward_pose(self, config: Configuration) -> Pose:
        pose = np.eye(4)
        pose[: self._dof, 3] = config
        return pose

    def jacobian(self, config: Configuration) -> Jacobian:
        J = np.zeros((6, self._dof))
        J[: self._dof, : self._dof] = np.eye(self._dof)
        return J

    def jacobian_inverse(self, config: Configuration) -> Jacobian:
        return self.jacobian(config).T

    def inverse_velocity(self, config: Configuration, twist: Twist) -> Configuration:
        # Exact pseudoinverse of [I; 0]: keep the translational components
        return np.array(twist[: self._dof], dtype=np.float64)

    def manipulability(self, config: Configuration) -> float:
        return 1.0

    def is_within_joint_limits(self, config: Configuration) -> bool:
        return bool(np.all(config >= self.lower) and np.all(config <= self.upper))


@dataclass(frozen=True)
class Disc:
    """Circular obstacle in the XY plane."""

    center: tuple[float, float]
    radius: float


def _segment_point_distance(
    a: NDArray[np.float64], b: NDArray[np.float64], p: NDArray[np.float64]
) -> float:
    ab = b - a
    denom = float(ab @ ab)
    t = 0.0 if denom == 0.0 else float(np.clip((p - a) @ ab / denom, 0.0, 1.0))
    return float(np.linalg.norm(a + t * ab - p))


class DiscCollisionWorld:
    """Collision detector for a PlanarArmKinematics among disc obstacles.

    Links are reported by name (default "link_<i>"). A link is sensorized when
    its name contains "sensor".
    """

    def __init__(
        self,
        arm: PlanarArmKinematics,
        obstacles: Mapping[str, Disc],
        link_names: Sequence[str] | None = None,
        link_radius: float = 0.0,
    ):
        self._arm = arm
        self._obstacles = dict(obstacles)
        self._link_names = (
            list(link_names) if link_names is not None else [f"link_{i}" for i in range(arm.dof)]
        )
        if len(self._link_names) != arm.dof:
            raise ValueError(f"Expected {arm.dof} link names, got {len(self._link_names)}")
        self._link_radius = link_radius

    @property
    def link_names(self) -> list[str]:
        return list(self._link_names)

    def contacts_at(self, config: Configuration) -> set[CollisionPair]:
        points = self._arm.joint_positions(np.asarray(config, dtype=np.float64))
        contacts: set[CollisionPair] = set()
        for i, link in enumerate(self._link_names):
            for name, disc in self._obstacles.items():
                distance = _segment_point_distance(
                    points[i], points[i + 1], np.asarray(disc.center, dtype=np.float64)
                )
                if distance <= disc.radius + self._link_radius:
                    contacts.add((link, name))
        return contacts

    def is_sensorized(self, part: PartId) -> bool:
        return "sensor" in part


class EmptyScene:
    """Collision detector of a scene without obstacles."""

    def contacts_at(self, config: Configuration) -> set[CollisionPair]:
        return set()

    def is_sensorized(self, part: PartId) -> bool:
        return True

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

"""Reachability check with goal resampling.

The controller makes a single greedy approach. GoalSampler sits on the caller
side: it tries the exact goal first, then goals drawn uniformly around it
until one is reached or the sample budget is spent.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from kincheck.utils.logging_config import setup_logger
from kincheck.utils.transform_utils import perturb_pose

if TYPE_CHECKING:
    from kincheck.control.collision_policy import CollisionTypes
    from kincheck.control.jacobian_controller import JacobianController
    from kincheck.control.spec import Configuration, Pose, SingleResult

logger = setup_logger()


@dataclass
class ReachabilityResult:
    """Outcome of a reachability check.

    Attributes:
        success: Whether any tried goal was reached
        final_configuration: Last configuration of the successful run
        goal_pose: The goal that was reached (or the last one tried)
        attempts: Number of controller runs made
        result: Controller result of the last run
    """

    success: bool
    final_configuration: Configuration | None
    goal_pose: Pose
    attempts: int
    result: SingleResult


class GoalSampler:
    """Retries a controller with goals sampled within position/orientation deltas."""

    def __init__(
        self,
        controller: JacobianController,
        position_deltas: Sequence[float] = (0.0, 0.0, 0.0),
        orientation_deltas: Sequence[float] = (0.0, 0.0, 0.0),
        sample_count: int = 20,
        seed: int | None = None,
    ):
        if len(position_deltas) != 3 or len(orientation_deltas) != 3:
            raise ValueError("Deltas must have three components")
        if any(d < 0 for d in [*position_deltas, *orientation_deltas]):
            raise ValueError("Deltas must be non-negative")
        if sample_count < 0:
            raise ValueError(f"sample_count must be >= 0, got {sample_count}")
        self._controller = controller
        self._position_deltas = np.asarray(position_deltas, dtype=np.float64)
        self._orientation_deltas = np.asarray(orientation_deltas, dtype=np.float64)
        self._sample_count = sample_count
        self._rng = np.random.default_rng(seed)

    def sample_goal(self, goal_pose: Pose) -> Pose:
        """Draw a goal uniformly within the deltas around goal_pose."""
        translation = self._rng.uniform(-self._position_deltas, self._position_deltas)
        rpy = self._rng.uniform(-self._orientation_deltas, self._orientation_deltas)
        return perturb_pose(np.asarray(goal_pose, dtype=np.float64), translation, rpy)

    def check(
        self,
        initial_configuration: Configuration,
        goal_pose: Pose,
        collision_types: CollisionTypes,
    ) -> ReachabilityResult:
        """Try the exact goal, then up to sample_count sampled goals."""
        result = self._controller.move_single_particle(
            initial_configuration, goal_pose, collision_types
        )
        if result.is_success():
            logger.info("Reached the exact goal frame")
            return ReachabilityResult(True, result.final_configuration, goal_pose, 1, result)

        candidate = goal_pose
        for attempt in range(1, self._sample_count + 1):
            candidate = self.sample_goal(goal_pose)
            result = self._controller.move_single_particle(
                initial_configuration, candidate, collision_types
            )
            if result.is_success():
                logger.info("Reached a sampled goal frame", attempt=attempt)
                return ReachabilityResult(
                    True, result.final_configuration, candidate, attempt + 1, result
                )

        logger.info(
            "Could not reach the goal frame within deltas",
            attempts=self._sample_count,
            last_outcome=result.description(),
        )
        return ReachabilityResult(False, None, candidate, self._sample_count + 1, result)

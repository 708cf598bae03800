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

"""Factory functions for controller components."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from kincheck.core.global_config import GlobalConfig

if TYPE_CHECKING:
    from kincheck.control.goal_sampling import GoalSampler
    from kincheck.control.jacobian_controller import JacobianController
    from kincheck.control.spec import (
        CollisionDetectorSpec,
        ControllerObserver,
        KinematicsSpec,
        MoveBeliefSettings,
    )


def create_controller(
    kinematics: KinematicsSpec,
    collision_detector: CollisionDetectorSpec,
    config: GlobalConfig | None = None,
    observer: ControllerObserver | None = None,
) -> JacobianController:
    """Create a JacobianController from config (default: environment/.env)."""
    from kincheck.control.jacobian_controller import JacobianController

    config = config or GlobalConfig()
    return JacobianController(
        kinematics,
        collision_detector,
        delta=config.delta,
        maximum_steps=config.step_budget,
        singularity_threshold=config.singularity_threshold,
        observer=observer,
        max_workers=config.max_workers,
    )


def create_belief_settings(config: GlobalConfig, dof: int) -> MoveBeliefSettings:
    """Particle and noise settings for a chain with dof joints."""
    from kincheck.control.spec import MoveBeliefSettings

    return MoveBeliefSettings(
        number_of_particles=config.number_of_particles,
        initial_std_error=config.error_vector("initial_std_error", dof),
        joints_std_error=config.error_vector("joints_std_error", dof),
        seed=config.seed,
    )


def create_goal_sampler(
    controller: JacobianController,
    config: GlobalConfig,
    position_deltas: Sequence[float] = (0.0, 0.0, 0.0),
    orientation_deltas: Sequence[float] = (0.0, 0.0, 0.0),
) -> GoalSampler:
    """Goal sampler using the configured sample count and seed."""
    from kincheck.control.goal_sampling import GoalSampler

    return GoalSampler(
        controller,
        position_deltas=position_deltas,
        orientation_deltas=orientation_deltas,
        sample_count=config.sample_count,
        seed=config.seed,
    )

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

"""Stepwise Jacobian controller with particle belief propagation.

JacobianController drives a kinematic chain toward a target pose in fixed
joint-space steps, propagates a particle belief under motion noise and stops
as soon as a step yields an outcome (see Outcome). It does no planning: one
locally greedy approach per call, retries are up to the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from kincheck.constants import MAX_TRAVEL_DISTANCE, SINGULARITY_THRESHOLD
from kincheck.control.belief import BeliefState, NoiseModel
from kincheck.control.collision_policy import (
    CollisionTypes,
    check_collision_constraints,
    validate_pair,
)
from kincheck.control.observers import NullObserver
from kincheck.control.spec import (
    BeliefResult,
    ContractViolationError,
    MoveBeliefSettings,
    Outcome,
    Particle,
    SingleResult,
)
from kincheck.control.utils.kinematics_utils import (
    compute_pose_delta,
    require_finite,
    scale_to_step,
)
from kincheck.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from kincheck.control.spec import (
        CollisionDetectorSpec,
        CollisionPair,
        Configuration,
        ControllerObserver,
        KinematicsSpec,
        Pose,
    )

logger = setup_logger()


@dataclass
class _ParticleStep:
    """One particle moved by one step."""

    config: Configuration
    outcomes: set[Outcome] = field(default_factory=set)
    contacts: set[CollisionPair] = field(default_factory=set)


class JacobianController:
    """Velocity-controlled approach to a target pose under uncertainty.

    Methods:
        - run(): Propagate a belief (settings decide particles and noise)
        - move_single_particle(): Noiseless single-particle run
        - move_belief(): Noiseless test run, then its commands replayed per particle
        - replay(): Repeat a command sequence open loop with noisy particles

    Example:
        controller = JacobianController(kinematics, collisions, delta=0.01)
        result = controller.move_single_particle(start, target_pose, CollisionTypes())
        if result.is_success():
            print(result.final_configuration)
    """

    def __init__(
        self,
        kinematics: KinematicsSpec,
        collision_detector: CollisionDetectorSpec,
        delta: float,
        maximum_steps: int | None = None,
        max_travel_distance: float = MAX_TRAVEL_DISTANCE,
        singularity_threshold: float = SINGULARITY_THRESHOLD,
        observer: ControllerObserver | None = None,
        max_workers: int = 1,
    ):
        """Create a Jacobian controller.

        Args:
            kinematics: Kinematics adapter of the chain
            collision_detector: Scene collision detector
            delta: Step magnitude in joint space; also the arrival threshold
            maximum_steps: Step budget (default: max_travel_distance / delta)
            max_travel_distance: Joint-space travel used to derive the step budget
            singularity_threshold: Manipulability below which a step is singular
            observer: Receives reset and per-step mean configurations
            max_workers: Threads used to evaluate particles within a step
        """
        if delta <= 0:
            raise ValueError(f"delta must be positive, got {delta}")
        if maximum_steps is None:
            maximum_steps = int(max_travel_distance / delta)
        if maximum_steps < 1:
            raise ValueError(f"maximum_steps must be >= 1, got {maximum_steps}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self._kinematics = kinematics
        self._collision_detector = collision_detector
        self._delta = delta
        self._maximum_steps = maximum_steps
        self._singularity_threshold = singularity_threshold
        self._observer: ControllerObserver = observer or NullObserver()
        self._max_workers = max_workers

    @property
    def dof(self) -> int:
        return self._kinematics.dof

    @property
    def delta(self) -> float:
        return self._delta

    @property
    def maximum_steps(self) -> int:
        return self._maximum_steps

    def move_single_particle(
        self,
        initial_configuration: Configuration,
        target_pose: Pose,
        collision_types: CollisionTypes,
    ) -> SingleResult:
        """Move one noiseless particle toward target_pose.

        Note that a successful run may end away from the target pose when it
        stops on a terminating collision.
        """
        return self.run(
            initial_configuration,
            target_pose,
            collision_types,
            MoveBeliefSettings.no_uncertainty(self.dof),
        )

    def move_belief(
        self,
        initial_configuration: Configuration,
        target_pose: Pose,
        collision_types: CollisionTypes,
        settings: MoveBeliefSettings,
    ) -> BeliefResult:
        """Two-phase belief run.

        First a single particle is moved without noise. Only if that succeeds,
        its velocity commands are repeated by every particle of the belief,
        with initial and motion noise sampled along the way (see replay()).

        Returns:
            BeliefResult whose particle_results is None when the noiseless
            phase failed
        """
        no_noise_result = self.move_single_particle(
            initial_configuration, target_pose, collision_types
        )
        if not no_noise_result.is_success():
            logger.info(
                "Noiseless test failed, skipping belief propagation",
                outcomes=no_noise_result.description(),
            )
            return BeliefResult(no_noise_test_result=no_noise_result)

        particle_results = self.replay(
            initial_configuration,
            target_pose,
            no_noise_result.commands,
            collision_types,
            settings,
        )

        result = BeliefResult(
            no_noise_test_result=no_noise_result, particle_results=particle_results
        )
        logger.info(
            "Belief run finished",
            particles=settings.number_of_particles,
            steps=len(no_noise_result.commands),
            success_ratio=f"{result.success_ratio():.2f}",
        )
        return result

    def replay(
        self,
        initial_configuration: Configuration,
        target_pose: Pose,
        commands: Sequence[Configuration],
        collision_types: CollisionTypes,
        settings: MoveBeliefSettings,
    ) -> list[SingleResult]:
        """Repeat a fixed sequence of velocity commands with every particle.

        Particles do not steer: each one starts from its own initial-error
        sample and applies the given commands open loop, with fresh motion
        noise every step. Limits, singularity and contacts are classified per
        particle and step exactly as in run(). A particle that gets through
        all commands is checked for arrival at target_pose; if it is still
        farther away than delta it ends with STEPS_LIMIT.

        Each particle has its own generator, spawned from settings.seed.

        Returns:
            One SingleResult per particle, in particle order
        """
        start = self._check_configuration(initial_configuration)
        target_pose = np.asarray(target_pose, dtype=np.float64)
        if target_pose.shape != (4, 4):
            raise ValueError(f"target_pose must be a 4x4 transform, got {target_pose.shape}")
        if settings.dof != self.dof:
            raise ValueError(f"Settings are for {settings.dof} joints, chain has {self.dof}")
        q_dots = [np.asarray(q_dot, dtype=np.float64) for q_dot in commands]

        seeds = np.random.SeedSequence(settings.seed).spawn(settings.number_of_particles)
        with self._particle_mapper() as map_particles:
            return list(
                map_particles(
                    lambda seed: self._replay_particle(
                        start, target_pose, q_dots, collision_types, settings, seed
                    ),
                    seeds,
                )
            )

    def run(
        self,
        initial_configuration: Configuration,
        target_pose: Pose,
        collision_types: CollisionTypes,
        settings: MoveBeliefSettings | None = None,
    ) -> SingleResult:
        """Propagate a belief from initial_configuration toward target_pose.

        Blocks until the run terminates. Each step moves every particle by the
        velocity command of the belief mean plus motion noise, then classifies
        all contacts of the step. The first step producing any outcome ends the run.

        Args:
            initial_configuration: Start configuration (belief center)
            target_pose: 4x4 target end-effector pose
            collision_types: Collision policy table
            settings: Particles and noise (default: single noiseless particle)

        Returns:
            SingleResult with the mean trajectory, final belief and outcomes
        """
        start = self._check_configuration(initial_configuration)
        target_pose = np.asarray(target_pose, dtype=np.float64)
        if target_pose.shape != (4, 4):
            raise ValueError(f"target_pose must be a 4x4 transform, got {target_pose.shape}")
        if settings is None:
            settings = MoveBeliefSettings.no_uncertainty(self.dof)
        if settings.dof != self.dof:
            raise ValueError(f"Settings are for {settings.dof} joints, chain has {self.dof}")

        noise_model = NoiseModel(
            self._kinematics,
            motion_error=settings.joints_std_error,
            initial_error=settings.initial_std_error,
            rng=np.random.default_rng(settings.seed),
        )
        belief = BeliefState.around(start, settings.number_of_particles, noise_model)
        required_counter = collision_types.make_required_collisions_counter()

        self._observer.reset()

        result = SingleResult(final_belief=belief)
        result.mean_trajectory.append(belief.config_mean())
        logger.debug(
            "Controller run started",
            particles=settings.number_of_particles,
            maximum_steps=self._maximum_steps,
        )

        with self._particle_mapper() as map_particles:
            for step in range(self._maximum_steps):
                q_dot = self.calculate_q_dot(belief.config_mean(), target_pose)
                if not np.any(q_dot):
                    outcome = (
                        Outcome.REACHED
                        if required_counter.all_required_present()
                        else Outcome.MISSED_REQUIRED_COLLISIONS
                    )
                    return self._finish(result.set_single_outcome(outcome), step)

                result.commands.append(q_dot)

                # Noise is drawn in particle order so threading cannot change it
                noises = [noise_model.sample_motion_error() for _ in range(belief.size)]
                particle_steps: list[_ParticleStep] = list(
                    map_particles(
                        lambda particle, noise: self._move_particle(
                            particle.config, q_dot, noise, noise_model
                        ),
                        belief.particles,
                        noises,
                    )
                )

                belief = BeliefState(
                    (Particle(config=s.config) for s in particle_steps), noise_model
                )
                result.final_belief = belief
                mean = belief.config_mean()
                result.mean_trajectory.append(mean)
                self._observer.on_mean_configuration(mean)

                collisions: set[CollisionPair] = set()
                for particle_step in particle_steps:
                    result.outcomes |= particle_step.outcomes
                    collisions |= particle_step.contacts

                check = check_collision_constraints(
                    collisions,
                    collision_types,
                    required_counter,
                    self._collision_detector.is_sensorized,
                )
                result.outcomes |= check.failures

                logger.debug(
                    "Controller step",
                    step=step,
                    contacts=len(collisions),
                    outcomes=[o.name for o in result.outcomes],
                )

                if result.outcomes:
                    return self._finish(result, step + 1)
                if check.success_termination:
                    return self._finish(
                        result.set_single_outcome(Outcome.ACCEPTABLE_COLLISION), step + 1
                    )

        return self._finish(result.set_single_outcome(Outcome.STEPS_LIMIT), self._maximum_steps)

    def calculate_q_dot(self, configuration: Configuration, goal_pose: Pose) -> Configuration:
        """Joint step of magnitude delta toward goal_pose, or zero on arrival."""
        current_pose = np.asarray(self._kinematics.forward_pose(configuration), dtype=np.float64)
        require_finite(current_pose, "end-effector pose")

        twist = compute_pose_delta(current_pose, goal_pose)

        q_dot = np.asarray(
            self._kinematics.inverse_velocity(configuration, twist), dtype=np.float64
        )
        if q_dot.shape != (self.dof,):
            raise ContractViolationError(
                f"inverse_velocity returned shape {q_dot.shape}, expected ({self.dof},)"
            )
        require_finite(q_dot, "joint velocity")

        return scale_to_step(q_dot, self._delta)

    def _move_particle(
        self,
        config: Configuration,
        q_dot: Configuration,
        noise: Configuration,
        noise_model: NoiseModel,
    ) -> _ParticleStep:
        # Noise grows with the commanded motion of each joint
        next_config = config + q_dot + np.sqrt(np.abs(q_dot)) * noise
        require_finite(next_config, "configuration")
        particle_step = _ParticleStep(config=next_config)

        if not noise_model.is_valid(next_config):
            particle_step.outcomes.add(Outcome.JOINT_LIMIT)

        manipulability = float(self._kinematics.manipulability(next_config))
        require_finite(manipulability, "manipulability")
        if self.dof > 3 and manipulability < self._singularity_threshold:
            particle_step.outcomes.add(Outcome.SINGULARITY)

        particle_step.contacts = {
            validate_pair(pair) for pair in self._collision_detector.contacts_at(next_config)
        }
        return particle_step

    def _replay_particle(
        self,
        start: Configuration,
        target_pose: Pose,
        q_dots: list[Configuration],
        collision_types: CollisionTypes,
        settings: MoveBeliefSettings,
        seed: np.random.SeedSequence,
    ) -> SingleResult:
        noise_model = NoiseModel(
            self._kinematics,
            motion_error=settings.joints_std_error,
            initial_error=settings.initial_std_error,
            rng=np.random.default_rng(seed),
        )
        belief = BeliefState.around(start, 1, noise_model)
        required_counter = collision_types.make_required_collisions_counter()

        result = SingleResult(final_belief=belief)
        result.mean_trajectory.append(belief.config_mean())

        for q_dot in q_dots:
            (particle,) = belief.particles
            particle_step = self._move_particle(
                particle.config, q_dot, noise_model.sample_motion_error(), noise_model
            )
            belief = BeliefState([Particle(config=particle_step.config)], noise_model)
            result.final_belief = belief
            result.mean_trajectory.append(particle_step.config)
            result.commands.append(q_dot)

            check = check_collision_constraints(
                particle_step.contacts,
                collision_types,
                required_counter,
                self._collision_detector.is_sensorized,
            )
            result.outcomes = particle_step.outcomes | check.failures
            if result.outcomes:
                return result
            if check.success_termination:
                return result.set_single_outcome(Outcome.ACCEPTABLE_COLLISION)

        if np.any(self.calculate_q_dot(belief.config_mean(), target_pose)):
            return result.set_single_outcome(Outcome.STEPS_LIMIT)
        return result.set_single_outcome(
            Outcome.REACHED
            if required_counter.all_required_present()
            else Outcome.MISSED_REQUIRED_COLLISIONS
        )

    def _check_configuration(self, configuration: Configuration) -> Configuration:
        config = np.asarray(configuration, dtype=np.float64)
        if config.shape != (self.dof,):
            raise ValueError(f"Configuration must have shape ({self.dof},), got {config.shape}")
        if not np.all(np.isfinite(config)):
            raise ValueError(f"Configuration is not finite: {config}")
        return config

    @contextmanager
    def _particle_mapper(self) -> Iterator[Callable[..., Any]]:
        if self._max_workers == 1:
            yield map
            return
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="particle"
        ) as executor:
            yield executor.map

    def _finish(self, result: SingleResult, steps: int) -> SingleResult:
        logger.info(
            "Controller run finished",
            outcome=result.description(),
            steps=steps,
            success=result.is_success(),
        )
        return result

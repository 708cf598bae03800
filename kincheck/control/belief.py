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

"""Particle belief over joint configurations and the noise model driving it.

A BeliefState is immutable: the controller builds a new one every step from
the propagated particles of the previous one.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

import numpy as np

from kincheck.control.spec import Particle

if TYPE_CHECKING:
    from kincheck.control.spec import Configuration, KinematicsSpec


class NoiseModel:
    """Per-joint Gaussian initial and motion error around a kinematic chain.

    The generator is owned by one run and must not be shared between runs.
    When both error vectors are zero nothing is sampled and the generator is
    never touched.
    """

    def __init__(
        self,
        kinematics: KinematicsSpec,
        motion_error: Configuration,
        initial_error: Configuration,
        rng: np.random.Generator,
    ):
        dof = kinematics.dof
        self.kinematics = kinematics
        self.motion_error = np.asarray(motion_error, dtype=np.float64)
        self.initial_error = np.asarray(initial_error, dtype=np.float64)
        self._rng = rng

        if self.motion_error.shape != (dof,) or self.initial_error.shape != (dof,):
            raise ValueError(
                f"Error vectors must have length {dof}, got "
                f"{self.motion_error.shape} and {self.initial_error.shape}"
            )

    @property
    def dof(self) -> int:
        return self.kinematics.dof

    @property
    def is_noiseless(self) -> bool:
        return not np.any(self.motion_error) and not np.any(self.initial_error)

    def sample_initial_error(self) -> Configuration:
        if not np.any(self.initial_error):
            return np.zeros(self.dof)
        return self._rng.normal(0.0, self.initial_error)

    def sample_motion_error(self) -> Configuration:
        if not np.any(self.motion_error):
            return np.zeros(self.dof)
        return self._rng.normal(0.0, self.motion_error)

    def is_valid(self, config: Configuration) -> bool:
        """Joint-limit validity, delegated to the kinematics adapter."""
        return bool(self.kinematics.is_within_joint_limits(config))


class BeliefState:
    """Ordered set of particles approximating a distribution over configurations."""

    def __init__(self, particles: Iterable[Particle], noise_model: NoiseModel):
        self._particles = tuple(particles)
        self._noise_model = noise_model
        if not self._particles:
            raise ValueError("A belief state needs at least one particle")

    @classmethod
    def around(
        cls, config: Configuration, number_of_particles: int, noise_model: NoiseModel
    ) -> BeliefState:
        """Sample a belief around config using the model's initial error."""
        config = np.asarray(config, dtype=np.float64)
        return cls(
            (
                Particle(config=config + noise_model.sample_initial_error())
                for _ in range(number_of_particles)
            ),
            noise_model,
        )

    @property
    def particles(self) -> tuple[Particle, ...]:
        return self._particles

    @property
    def noise_model(self) -> NoiseModel:
        return self._noise_model

    @property
    def size(self) -> int:
        return len(self._particles)

    def __len__(self) -> int:
        return len(self._particles)

    def __iter__(self) -> Iterator[Particle]:
        return iter(self._particles)

    def configurations(self) -> np.ndarray:
        """Particle configurations stacked as a (size x dof) array."""
        return np.vstack([p.config for p in self._particles])

    def config_mean(self) -> Configuration:
        """Component-wise mean configuration."""
        mean: Configuration = np.mean(self.configurations(), axis=0)
        return mean

    def config_covariance(self) -> np.ndarray:
        """Sample covariance of the particles (zero matrix for one particle)."""
        configs = self.configurations()
        if configs.shape[0] < 2:
            return np.zeros((configs.shape[1], configs.shape[1]))
        return np.atleast_2d(np.cov(configs, rowvar=False))

    def __repr__(self) -> str:
        return f"BeliefState(size={self.size}, mean={self.config_mean().tolist()})"

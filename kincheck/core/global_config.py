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

from functools import cached_property

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kincheck.constants import MAX_TRAVEL_DISTANCE, SINGULARITY_THRESHOLD


class GlobalConfig(BaseSettings):
    delta: float = Field(default=0.01, gt=0)
    max_travel_distance: float = Field(default=MAX_TRAVEL_DISTANCE, gt=0)
    maximum_steps: int | None = Field(default=None, ge=1)
    singularity_threshold: float = Field(default=SINGULARITY_THRESHOLD, ge=0)
    number_of_particles: int = Field(default=20, ge=1)
    initial_std_error: float | list[float] = 0.0
    joints_std_error: float | list[float] = 0.0
    seed: int | None = None
    max_workers: int = Field(default=1, ge=1)
    sample_count: int = Field(default=20, ge=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="KINCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="after")
    def _check_errors(self) -> "GlobalConfig":
        for name in ("initial_std_error", "joints_std_error"):
            value = getattr(self, name)
            values = value if isinstance(value, list) else [value]
            if any(v < 0 for v in values):
                raise ValueError(f"{name} must be non-negative")
        return self

    @cached_property
    def step_budget(self) -> int:
        if self.maximum_steps is not None:
            return self.maximum_steps
        return int(self.max_travel_distance / self.delta)

    def error_vector(self, name: str, dof: int) -> list[float]:
        """Expand a scalar or per-joint error setting to dof entries."""
        value = getattr(self, name)
        if isinstance(value, list):
            if len(value) != dof:
                raise ValueError(f"{name} has {len(value)} entries, expected {dof}")
            return list(value)
        return [float(value)] * dof

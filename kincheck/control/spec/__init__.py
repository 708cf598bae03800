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

"""Jacobian Controller Specifications."""

from kincheck.control.spec.config import MoveBeliefSettings
from kincheck.control.spec.enums import Outcome
from kincheck.control.spec.protocols import (
    CollisionDetectorSpec,
    ControllerObserver,
    KinematicsSpec,
)
from kincheck.control.spec.types import (
    BeliefResult,
    CollisionPair,
    Configuration,
    ContractViolationError,
    Jacobian,
    PartId,
    Particle,
    Pose,
    SingleResult,
    Twist,
)

__all__ = [
    "BeliefResult",
    "CollisionDetectorSpec",
    "CollisionPair",
    "Configuration",
    "ContractViolationError",
    "ControllerObserver",
    "Jacobian",
    "KinematicsSpec",
    "MoveBeliefSettings",
    "Outcome",
    "PartId",
    "Particle",
    "Pose",
    "SingleResult",
    "Twist",
]

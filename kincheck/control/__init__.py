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
Jacobian Control Module

Stepwise velocity control of a kinematic chain toward a target pose, with a
particle belief over configurations and a collision policy deciding how a run
ends.

## Architecture

- KinematicsSpec: forward pose, Jacobian, inverse velocity, joint limits
- CollisionDetectorSpec: contacts at a configuration, sensorized parts
- ControllerObserver: optional per-step notifications (viewers, logging)
- JacobianController: the control loop
  - run(): belief propagation toward the target
  - move_single_particle(): noiseless run
  - move_belief(): noiseless test, then one noisy run per particle
- CollisionTypes: policy table classifying contacts

## Usage

```python
from kincheck.control import CollisionTypes, JacobianController
from kincheck.control.models import EmptyScene, PlanarArmKinematics

arm = PlanarArmKinematics([1.0, 1.0, 1.0, 1.0])
controller = JacobianController(arm, EmptyScene(), delta=0.01)
result = controller.move_single_particle(start, target_pose, CollisionTypes())
print(result.description())
```
"""

from kincheck.control.belief import BeliefState, NoiseModel
from kincheck.control.collision_policy import (
    CollisionConstraintsCheck,
    CollisionRule,
    CollisionType,
    CollisionTypes,
    RequiredCollisionsCounter,
    check_collision_constraints,
)
from kincheck.control.factory import create_belief_settings, create_controller
from kincheck.control.goal_sampling import GoalSampler, ReachabilityResult
from kincheck.control.jacobian_controller import JacobianController
from kincheck.control.observers import LoggingObserver, NullObserver, StreamObserver
from kincheck.control.spec import (
    BeliefResult,
    CollisionDetectorSpec,
    ContractViolationError,
    ControllerObserver,
    KinematicsSpec,
    MoveBeliefSettings,
    Outcome,
    Particle,
    SingleResult,
)

__all__ = [
    "BeliefResult",
    "BeliefState",
    "CollisionConstraintsCheck",
    "CollisionDetectorSpec",
    "CollisionRule",
    "CollisionType",
    "CollisionTypes",
    "ContractViolationError",
    "ControllerObserver",
    "GoalSampler",
    "JacobianController",
    "KinematicsSpec",
    "LoggingObserver",
    "MoveBeliefSettings",
    "NoiseModel",
    "NullObserver",
    "Outcome",
    "Particle",
    "ReachabilityResult",
    "RequiredCollisionsCounter",
    "SingleResult",
    "StreamObserver",
    "check_collision_constraints",
    "create_belief_settings",
    "create_controller",
]

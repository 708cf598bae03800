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

import numpy as np
import pytest

from kincheck.control.collision_policy import CollisionTypes
from kincheck.control.goal_sampling import GoalSampler
from kincheck.control.jacobian_controller import JacobianController
from kincheck.control.models import CartesianGantryKinematics, EmptyScene
from kincheck.utils.transform_utils import pose_from_xyz_rpy, pose_to_xyz_rpy


@pytest.fixture
def controller():
    gantry = CartesianGantryKinematics(
        dof=3, joint_limits_lower=[-1.0, -1.0, -1.0], joint_limits_upper=[0.1, 1.0, 1.0]
    )
    return JacobianController(gantry, EmptyScene(), delta=0.01, maximum_steps=100)


class TestGoalSampler:
    def test_exact_goal_tried_first(self, controller):
        goal = pose_from_xyz_rpy([0.05, 0.02, 0.0])
        sampler = GoalSampler(controller, position_deltas=(0.1, 0.1, 0.0), seed=0)

        result = sampler.check(np.zeros(3), goal, CollisionTypes())

        assert result.success
        assert result.attempts == 1
        assert result.goal_pose is goal
        assert np.allclose(result.final_configuration, [0.05, 0.02, 0.0], atol=0.01)

    def test_sampled_goal_recovers_unreachable_goal(self, controller):
        # x beyond the joint limit, only goals sampled below 0.1 are reachable
        goal = pose_from_xyz_rpy([0.15, 0.0, 0.0])
        sampler = GoalSampler(controller, position_deltas=(0.15, 0.0, 0.0), sample_count=20, seed=4)

        result = sampler.check(np.zeros(3), goal, CollisionTypes())

        assert result.success
        assert result.attempts > 1
        assert result.goal_pose[0, 3] < 0.1 + controller.delta
        assert result.result.is_success()

    def test_no_samples_reports_failure(self, controller):
        goal = pose_from_xyz_rpy([0.15, 0.0, 0.0])
        sampler = GoalSampler(controller, sample_count=0)

        result = sampler.check(np.zeros(3), goal, CollisionTypes())

        assert not result.success
        assert result.attempts == 1
        assert result.final_configuration is None
        assert not result.result.is_success()

    def test_samples_stay_within_deltas(self, controller):
        goal = pose_from_xyz_rpy([0.5, -0.2, 0.3])
        sampler = GoalSampler(
            controller,
            position_deltas=(0.1, 0.05, 0.0),
            orientation_deltas=(0.0, 0.0, 0.2),
            seed=1,
        )

        for _ in range(100):
            xyz, rpy = pose_to_xyz_rpy(sampler.sample_goal(goal))
            assert abs(xyz[0] - 0.5) <= 0.1
            assert abs(xyz[1] + 0.2) <= 0.05
            assert xyz[2] == pytest.approx(0.3)
            assert rpy[0] == pytest.approx(0.0, abs=1e-9)
            assert rpy[1] == pytest.approx(0.0, abs=1e-9)
            assert abs(rpy[2]) <= 0.2 + 1e-9

    def test_rejects_bad_deltas(self, controller):
        with pytest.raises(ValueError):
            GoalSampler(controller, position_deltas=(0.1, 0.1))
        with pytest.raises(ValueError):
            GoalSampler(controller, orientation_deltas=(0.0, -0.1, 0.0))

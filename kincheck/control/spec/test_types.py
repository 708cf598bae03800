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

from kincheck.control.spec import (
    BeliefResult,
    MoveBeliefSettings,
    Outcome,
    SingleResult,
)


def _result(*outcomes: Outcome) -> SingleResult:
    return SingleResult(mean_trajectory=[np.zeros(2)], outcomes=set(outcomes))


class TestOutcome:
    def test_success_outcomes(self):
        assert {o for o in Outcome if o.is_success} == {
            Outcome.REACHED,
            Outcome.ACCEPTABLE_COLLISION,
        }

    def test_every_outcome_has_description(self):
        for outcome in Outcome:
            assert outcome.describe()


class TestSingleResult:
    def test_success(self):
        assert _result(Outcome.REACHED).is_success()
        assert _result(Outcome.ACCEPTABLE_COLLISION)
        assert not _result(Outcome.STEPS_LIMIT).is_success()

    def test_multiple_outcomes_are_failure(self):
        assert not _result(Outcome.REACHED, Outcome.JOINT_LIMIT).is_success()

    def test_no_outcome_is_an_error(self):
        with pytest.raises(ValueError):
            SingleResult().is_success()

    def test_set_single_outcome_replaces(self):
        result = _result(Outcome.SINGULARITY, Outcome.JOINT_LIMIT)

        assert result.set_single_outcome(Outcome.REACHED) is result
        assert result.outcomes == {Outcome.REACHED}

    def test_description_in_declaration_order(self):
        result = _result(Outcome.MISSED_REQUIRED_COLLISIONS, Outcome.UNACCEPTABLE_COLLISION)

        assert result.description() == (
            "ended on unacceptable collision, missing required collisions"
        )

    def test_final_configuration(self):
        assert SingleResult().final_configuration is None
        result = SingleResult(mean_trajectory=[np.zeros(2), np.ones(2)])
        assert np.array_equal(result.final_configuration, np.ones(2))


class TestBeliefResult:
    def test_failed_noiseless_phase(self):
        result = BeliefResult(no_noise_test_result=_result(Outcome.JOINT_LIMIT))

        assert not result.is_success()
        assert result.success_ratio() == 0.0

    def test_all_particles_must_succeed(self):
        result = BeliefResult(
            no_noise_test_result=_result(Outcome.REACHED),
            particle_results=[
                _result(Outcome.REACHED),
                _result(Outcome.ACCEPTABLE_COLLISION),
                _result(Outcome.UNSENSORIZED_COLLISION),
                _result(Outcome.REACHED),
            ],
        )

        assert not result
        assert result.success_ratio() == 0.75

    def test_success(self):
        result = BeliefResult(
            no_noise_test_result=_result(Outcome.REACHED),
            particle_results=[_result(Outcome.REACHED)],
        )

        assert result.is_success()


class TestMoveBeliefSettings:
    def test_no_uncertainty(self):
        settings = MoveBeliefSettings.no_uncertainty(3, seed=5)

        assert settings.dof == 3
        assert settings.number_of_particles == 1
        assert settings.is_deterministic

    def test_converts_sequences(self):
        settings = MoveBeliefSettings(4, [0.1, 0.1], [0.0, 0.2])

        assert isinstance(settings.initial_std_error, np.ndarray)
        assert not settings.is_deterministic

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"number_of_particles": 0, "initial_std_error": [0.0], "joints_std_error": [0.0]},
            {"number_of_particles": 1, "initial_std_error": [0.0], "joints_std_error": [0.0, 0.0]},
            {"number_of_particles": 1, "initial_std_error": [-0.1], "joints_std_error": [0.0]},
        ],
    )
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(ValueError):
            MoveBeliefSettings(**kwargs)

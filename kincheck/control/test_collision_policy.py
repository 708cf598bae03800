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

"""Unit tests for the collision policy classifier."""

from itertools import permutations

import pytest
from pydantic import ValidationError

from kincheck.control.collision_policy import (
    CollisionRule,
    CollisionType,
    CollisionTypes,
    RequiredCollisionsCounter,
    check_collision_constraints,
    pair_key,
    validate_pair,
)
from kincheck.control.spec import ContractViolationError, Outcome


def _all_sensorized(part: str) -> bool:
    return True


def _sensor_prefix(part: str) -> bool:
    return part.startswith("sensor")


def _classify(collisions, types, sensorized=_all_sensorized):
    counter = types.make_required_collisions_counter()
    return check_collision_constraints(collisions, types, counter, sensorized), counter


class TestCollisionTypes:
    def test_lookup_is_order_independent(self):
        types = CollisionTypes({("gripper", "table"): CollisionType(prohibited=True)})

        assert types.get("gripper", "table").prohibited
        assert types.get("table", "gripper").prohibited
        assert len(types) == 1

    def test_unlisted_pair_uses_default(self):
        default = CollisionType(prohibited=True)
        types = CollisionTypes(default=default)

        assert types.get("a", "b") == default

    def test_default_cannot_be_ignored_or_required(self):
        with pytest.raises(ValueError):
            CollisionTypes(default=CollisionType(ignored=True))
        with pytest.raises(ValueError):
            CollisionTypes(default=CollisionType(required=True))

    def test_from_records(self):
        types = CollisionTypes.from_records(
            [
                {"first": "finger", "second": "button", "required": True},
                CollisionRule(first="palm", second="wall", prohibited=True),
            ]
        )

        assert types.get("button", "finger").required
        assert types.get("wall", "palm").prohibited
        assert types.required_pairs() == {pair_key("finger", "button")}

    def test_from_records_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            CollisionTypes.from_records([{"first": "a", "second": "b", "fatal": True}])


class TestRequiredCollisionsCounter:
    def test_counts_only_required_pairs(self):
        counter = RequiredCollisionsCounter([pair_key("finger", "button")])
        counter.count_collision("palm", "wall")
        assert not counter.all_required_present()
        assert counter.missing() == {pair_key("finger", "button")}

        counter.count_collision("button", "finger")
        assert counter.all_required_present()
        assert counter.seen == frozenset({pair_key("finger", "button")})

    def test_empty_requirement_is_satisfied(self):
        assert RequiredCollisionsCounter([]).all_required_present()


class TestCheckCollisionConstraints:
    def test_no_contacts(self):
        check, _ = _classify(set(), CollisionTypes())

        assert check.failures == set()
        assert not check.success_termination

    def test_prohibited_contact(self):
        types = CollisionTypes({("palm", "wall"): CollisionType(prohibited=True)})

        check, _ = _classify({("palm", "wall")}, types)

        assert check.failures == {Outcome.UNACCEPTABLE_COLLISION}

    def test_unsensorized_contact(self):
        check, _ = _classify({("forearm", "shelf")}, CollisionTypes(), _sensor_prefix)

        assert check.failures == {Outcome.UNSENSORIZED_COLLISION}

    def test_sensorization_checked_on_robot_part(self):
        check, _ = _classify({("sensor_pad", "shelf")}, CollisionTypes(), _sensor_prefix)

        assert check.failures == set()

    def test_ignored_contact_never_fails(self):
        types = CollisionTypes({("forearm", "shelf"): CollisionType(ignored=True)})

        check, _ = _classify({("forearm", "shelf")}, types, _sensor_prefix)

        assert check.failures == set()
        assert not check.success_termination

    def test_terminating_contact_succeeds(self):
        types = CollisionTypes({("finger", "table"): CollisionType(terminating=True)})

        check, _ = _classify({("finger", "table")}, types)

        assert check.failures == set()
        assert check.success_termination

    def test_terminating_needs_required(self):
        types = CollisionTypes(
            {
                ("finger", "table"): CollisionType(terminating=True),
                ("finger", "button"): CollisionType(required=True),
            }
        )

        check, counter = _classify({("finger", "table")}, types)
        assert not check.success_termination
        assert not counter.all_required_present()

        check, counter = _classify({("finger", "table"), ("finger", "button")}, types)
        assert check.success_termination
        assert counter.all_required_present()

    def test_terminating_with_failure_is_not_success(self):
        types = CollisionTypes(
            {
                ("finger", "table"): CollisionType(terminating=True),
                ("palm", "wall"): CollisionType(prohibited=True),
            }
        )

        check, _ = _classify({("finger", "table"), ("palm", "wall")}, types)

        assert check.failures == {Outcome.UNACCEPTABLE_COLLISION}
        assert not check.success_termination

    def test_result_independent_of_contact_order(self):
        types = CollisionTypes(
            {
                ("sensor_finger", "table"): CollisionType(terminating=True),
                ("sensor_finger", "button"): CollisionType(required=True),
                ("palm", "wall"): CollisionType(ignored=True),
            }
        )
        contacts = [("sensor_finger", "table"), ("sensor_finger", "button"), ("palm", "wall")]

        results = set()
        for ordering in permutations(contacts):
            check, counter = _classify(list(ordering), types, _sensor_prefix)
            results.add(
                (frozenset(check.failures), check.success_termination, counter.seen)
            )

        assert len(results) == 1
        ((failures, success, _),) = results
        assert failures == frozenset()
        assert success


class TestValidatePair:
    def test_accepts_string_pair(self):
        assert validate_pair(("finger", "table")) == ("finger", "table")

    @pytest.mark.parametrize(
        "pair",
        [
            (0x7F3A2C10, "table"),
            ("finger", ""),
            ("finger",),
            ["finger", "table"],
            None,
        ],
    )
    def test_rejects_malformed(self, pair):
        with pytest.raises(ContractViolationError):
            validate_pair(pair)

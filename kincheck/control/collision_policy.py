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
Collision Policy

Classifies contacts reported during a run against a table of collision types.

Current logic: a prohibited collision is a failure. An ignored collision is
never a failure, even when the robot part touching it is unsensorized. A
terminating collision ends the run, successfully only if there were no other
failures and every required collision was seen at some point of the run.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from kincheck.control.spec import ContractViolationError, Outcome

if TYPE_CHECKING:
    from kincheck.control.spec import CollisionPair, PartId

PairKey = frozenset


@dataclass(frozen=True)
class CollisionType:
    """Policy flags of an unordered part pair."""

    ignored: bool = False
    prohibited: bool = False
    terminating: bool = False
    required: bool = False


class CollisionRule(BaseModel):
    """One row of a collision policy table, as loaded from config files."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    first: str
    second: str
    ignored: bool = False
    prohibited: bool = False
    terminating: bool = False
    required: bool = False

    def collision_type(self) -> CollisionType:
        return CollisionType(
            ignored=self.ignored,
            prohibited=self.prohibited,
            terminating=self.terminating,
            required=self.required,
        )


def pair_key(first: PartId, second: PartId) -> PairKey:
    """Order-independent key of a part pair."""
    return frozenset((first, second))


def validate_pair(pair: Any) -> CollisionPair:
    """Check that a reported contact is a pair of non-empty string identifiers."""
    if not isinstance(pair, tuple) or len(pair) != 2:
        raise ContractViolationError(f"Contact must be a pair of part ids, got {pair!r}")
    first, second = pair
    for part in (first, second):
        if not isinstance(part, str) or not part:
            raise ContractViolationError(f"Malformed part identifier {part!r} in {pair!r}")
    return first, second


class RequiredCollisionsCounter:
    """Remembers which required pairs were touched during the whole run."""

    def __init__(self, required: Iterable[PairKey]):
        self._required = frozenset(required)
        self._seen: set[PairKey] = set()

    def count_collision(self, first: PartId, second: PartId) -> None:
        key = pair_key(first, second)
        if key in self._required:
            self._seen.add(key)

    def all_required_present(self) -> bool:
        return self._seen >= self._required

    def missing(self) -> set[PairKey]:
        return set(self._required - self._seen)

    @property
    def seen(self) -> frozenset[PairKey]:
        return frozenset(self._seen)


class CollisionTypes:
    """Policy table mapping unordered part pairs to collision types.

    Unlisted pairs use the default type, which can be neither ignored nor
    required.
    """

    def __init__(
        self,
        types: Mapping[tuple[PartId, PartId], CollisionType] | None = None,
        default: CollisionType | None = None,
    ):
        default = default or CollisionType()
        if default.ignored or default.required:
            raise ValueError("Default collision type can be neither ignored nor required")
        self._default = default
        self._types: dict[PairKey, CollisionType] = {}
        for (first, second), collision_type in (types or {}).items():
            self.set(first, second, collision_type)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any] | CollisionRule],
        default: CollisionType | None = None,
    ) -> CollisionTypes:
        """Build a table from plain dicts (e.g. parsed YAML/JSON)."""
        rules = [r if isinstance(r, CollisionRule) else CollisionRule(**r) for r in records]
        return cls({(r.first, r.second): r.collision_type() for r in rules}, default=default)

    @property
    def default(self) -> CollisionType:
        return self._default

    def set(self, first: PartId, second: PartId, collision_type: CollisionType) -> None:
        self._types[pair_key(first, second)] = collision_type

    def get(self, first: PartId, second: PartId) -> CollisionType:
        return self._types.get(pair_key(first, second), self._default)

    def required_pairs(self) -> set[PairKey]:
        return {key for key, t in self._types.items() if t.required}

    def make_required_collisions_counter(self) -> RequiredCollisionsCounter:
        return RequiredCollisionsCounter(self.required_pairs())

    def __len__(self) -> int:
        return len(self._types)


@dataclass
class CollisionConstraintsCheck:
    """Classification of one step's contacts."""

    failures: set[Outcome] = field(default_factory=set)
    success_termination: bool = False


def check_collision_constraints(
    collisions: Iterable[CollisionPair],
    collision_types: CollisionTypes,
    required_counter: RequiredCollisionsCounter,
    is_sensorized: Callable[[PartId], bool],
) -> CollisionConstraintsCheck:
    """Classify a step's contacts and register them with the required counter.

    The result depends only on which pairs occurred, not on their order.

    Args:
        collisions: Contacts of all particles for this step, robot part first
        collision_types: Policy table
        required_counter: Run-wide counter, updated in place
        is_sensorized: Predicate telling whether a robot part senses contact

    Returns:
        Failures (UNSENSORIZED_COLLISION, UNACCEPTABLE_COLLISION) and whether
        the step ends the run on an acceptable collision
    """
    check = CollisionConstraintsCheck()
    terminating_collision_present = False

    for first, second in collisions:
        collision_type = collision_types.get(first, second)

        required_counter.count_collision(first, second)

        if not collision_type.ignored and not is_sensorized(first):
            check.failures.add(Outcome.UNSENSORIZED_COLLISION)
        if collision_type.prohibited:
            check.failures.add(Outcome.UNACCEPTABLE_COLLISION)
        if collision_type.terminating:
            terminating_collision_present = True

    check.success_termination = (
        terminating_collision_present
        and not check.failures
        and required_counter.all_required_present()
    )
    return check

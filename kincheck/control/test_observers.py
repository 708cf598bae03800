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

from unittest.mock import MagicMock

import numpy as np
import pytest

from kincheck.control.observers import LoggingObserver, NullObserver, StreamObserver
from kincheck.control.spec import ControllerObserver


@pytest.mark.parametrize("cls", [NullObserver, LoggingObserver, StreamObserver])
def test_implements_protocol(cls):
    assert isinstance(cls(), ControllerObserver)


def test_logging_observer_counts_steps():
    observer = LoggingObserver()
    observer.on_mean_configuration(np.zeros(2))
    observer.on_mean_configuration(np.ones(2))
    assert observer._step == 2

    observer.reset()
    assert observer._step == 0


def test_stream_observer_emits_copies():
    observer = StreamObserver()
    received = []
    observer.mean_configuration_stream().subscribe(received.append)

    config = np.array([0.1, 0.2])
    observer.on_mean_configuration(config)
    config[0] = 9.0

    assert len(received) == 1
    assert np.array_equal(received[0], [0.1, 0.2])


def test_stream_observer_dispose_completes_streams():
    observer = StreamObserver()
    on_completed = MagicMock()
    observer.reset_stream().subscribe(on_completed=on_completed)

    observer.dispose()

    on_completed.assert_called_once()

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

"""ControllerObserver implementations.

The controller calls its observer synchronously after every step, so these
only forward the notification and return.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from reactivex.subject import Subject

from kincheck.utils.logging_config import setup_logger

if TYPE_CHECKING:
    from reactivex import Observable

    from kincheck.control.spec import Configuration

logger = setup_logger()


class NullObserver:
    """Discards all notifications."""

    def reset(self) -> None:
        pass

    def on_mean_configuration(self, config: Configuration) -> None:
        pass


class LoggingObserver:
    """Logs every mean configuration at debug level."""

    def __init__(self) -> None:
        self._step = 0

    def reset(self) -> None:
        self._step = 0
        logger.debug("Trajectory reset")

    def on_mean_configuration(self, config: Configuration) -> None:
        self._step += 1
        logger.debug("Mean configuration", step=self._step, config=config.tolist())


class StreamObserver:
    """Republishes controller notifications as reactive streams.

    Viewers subscribe to the streams; the controller itself never depends on
    a GUI or event loop.

    Example:
        observer = StreamObserver()
        observer.mean_configuration_stream().subscribe(viewer.draw_configuration)
        observer.reset_stream().subscribe(lambda _: viewer.reset())
        controller = JacobianController(kin, collisions, delta=0.01, observer=observer)
    """

    def __init__(self) -> None:
        self._reset_subject: Subject[None] = Subject()
        self._mean_subject: Subject[Configuration] = Subject()

    def reset(self) -> None:
        self._reset_subject.on_next(None)

    def on_mean_configuration(self, config: Configuration) -> None:
        self._mean_subject.on_next(config.copy())

    def reset_stream(self) -> Observable[None]:
        return self._reset_subject

    def mean_configuration_stream(self) -> Observable[Configuration]:
        return self._mean_subject

    def dispose(self) -> None:
        self._reset_subject.on_completed()
        self._mean_subject.on_completed()
        self._reset_subject.dispose()
        self._mean_subject.dispose()

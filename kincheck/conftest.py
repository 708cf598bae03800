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

import threading

import pytest


@pytest.fixture(autouse=True)
def monitor_threads():
    before = {t.ident for t in threading.enumerate()}

    yield

    leaked = [
        t.name
        for t in threading.enumerate()
        if t.ident not in before and t.name != "MainThread" and t.is_alive()
    ]
    if leaked:
        pytest.fail(f"Threads left running by this test: {leaked}")

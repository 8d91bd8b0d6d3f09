# /*
# Copyright 2026 The Launch Kit Authors.
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
# */

"""launch_kit - network fabric discovery, profile selection and deployment for Kubernetes."""

from __future__ import annotations

import logging

from rich.console import Console

__version__ = "0.1.0"
__git_commit__ = "dev"
__build_date__ = "unknown"

console = Console(stderr=True)
logger = logging.getLogger("launch_kit")

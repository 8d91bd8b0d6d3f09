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

"""Version subcommand."""

from __future__ import annotations

import typer

import launch_kit


def version() -> None:
    """Print the version number of l8k along with build information."""
    typer.echo(f"l8k v{launch_kit.__version__}")
    typer.echo(f"Git Commit: {launch_kit.__git_commit__}")
    typer.echo(f"Build Date: {launch_kit.__build_date__}")

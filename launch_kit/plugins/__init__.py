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

"""Plugin registry."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from launch_kit.config import RuntimeSettings
from launch_kit.errors import ConfigurationError
from launch_kit.plugins.base import Plugin
from launch_kit.plugins.network_operator import PLUGIN_NAME as NETWORK_OPERATOR, NetworkOperatorPlugin

PLUGINS: dict[str, Callable[..., Plugin]] = {
    NETWORK_OPERATOR: NetworkOperatorPlugin,
}


def build_plugins(names: Sequence[str], settings: RuntimeSettings, **kwargs) -> list[Plugin]:
    """Instantiate the named plugins, in the order given.

    Args:
        names: Plugin names from ``--enabled-plugins``.
        settings: Runtime settings passed to every plugin.
        **kwargs: Extra constructor arguments (cancel event, deadline, sleep).

    Raises:
        ConfigurationError: If a name is not registered.
    """
    plugins = []
    for name in names:
        factory = PLUGINS.get(name)
        if factory is None:
            raise ConfigurationError(f"unknown plugin {name!r}; available: {', '.join(sorted(PLUGINS))}")
        plugins.append(factory(settings, **kwargs))
    return plugins

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

"""Render a profile's manifest templates with Jinja2."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound

from launch_kit import logger
from launch_kit.errors import ConfigurationError


def _environment(directory: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(directory)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_templates(template_paths: Sequence[Path], context: dict) -> dict[str, str]:
    """Render each template with *context*.

    Args:
        template_paths: Template files, rendered in order.
        context: Template variables, normally the camelCase config dictionary.

    Returns:
        Rendered text keyed by template base name.

    Raises:
        ConfigurationError: If a template is missing, malformed, or refers to
            an undefined variable.
    """
    rendered: dict[str, str] = {}
    environments: dict[Path, Environment] = {}
    for template_path in template_paths:
        template_path = Path(template_path)
        directory = template_path.parent
        env = environments.setdefault(directory, _environment(directory))
        try:
            template = env.get_template(template_path.name)
            rendered[template_path.name] = template.render(**context)
        except TemplateNotFound as e:
            raise ConfigurationError(f"template {template_path} not found") from e
        except TemplateError as e:
            raise ConfigurationError(f"failed to render template {template_path}: {e}") from e
        logger.debug("Rendered %s", template_path)
    return rendered

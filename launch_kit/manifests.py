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

"""Splitting rendered text into manifests, and reading and writing manifest files."""

from __future__ import annotations

import shutil
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from launch_kit import logger
from launch_kit.errors import ConfigurationError

MANIFEST_SUFFIXES = (".yaml", ".yml")


def split_documents(text: str) -> list[str]:
    """Split multi-document YAML on separator lines, dropping blank documents.

    A separator is any line whose stripped text starts with ``---``.
    """
    documents: list[str] = []
    current: list[str] = []
    for line in text.splitlines():
        if line.strip().startswith("---"):
            documents.append("\n".join(current))
            current = []
        else:
            current.append(line)
    documents.append("\n".join(current))
    return [doc for doc in documents if doc.strip()]


@dataclass(frozen=True)
class Manifest:
    """One decoded cluster object.

    Attributes:
        source: File name the document came from.
        index: Position of the document within that file.
        obj: The decoded object.
    """

    source: str
    index: int
    obj: dict = field(compare=False)

    @property
    def kind(self) -> str:
        return self.obj["kind"]

    @property
    def name(self) -> str:
        return self.obj["metadata"]["name"]

    @property
    def api_version(self) -> str:
        return self.obj.get("apiVersion", "")

    @property
    def namespace(self) -> str | None:
        return self.obj["metadata"].get("namespace")

    def describe(self) -> str:
        return f"{self.kind}/{self.name} ({self.source}#{self.index})"


def parse_manifest(source: str, index: int, document: str) -> Manifest:
    """Decode one document.

    Raises:
        ConfigurationError: If the document is not YAML or lacks kind or name.
    """
    try:
        obj = yaml.safe_load(document)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"failed to parse document {index} of {source}: {e}") from e
    if not isinstance(obj, dict):
        raise ConfigurationError(f"document {index} of {source} is not a mapping")
    if not obj.get("kind"):
        raise ConfigurationError(f"document {index} of {source} has no kind")
    if not (obj.get("metadata") or {}).get("name"):
        raise ConfigurationError(f"document {index} of {source} has no metadata.name")
    return Manifest(source=source, index=index, obj=obj)


def manifests_from_rendered(files: Mapping[str, str]) -> list[Manifest]:
    """Decode rendered files, ordered by file name then document order."""
    manifests: list[Manifest] = []
    for source in sorted(files):
        for index, document in enumerate(split_documents(files[source])):
            manifests.append(parse_manifest(source, index, document))
    return manifests


def read_manifest_dir(path: Path) -> dict[str, str]:
    """Read the ``.yaml``/``.yml`` files directly under *path*.

    Raises:
        ConfigurationError: If *path* is not a directory or a file is unreadable.
    """
    path = Path(path)
    if not path.is_dir():
        raise ConfigurationError(f"manifests directory does not exist: {path}")
    files: dict[str, str] = {}
    for file in sorted(path.iterdir()):
        if file.is_file() and file.suffix in MANIFEST_SUFFIXES:
            try:
                files[file.name] = file.read_text()
            except OSError as e:
                raise ConfigurationError(f"failed to read manifest {file}: {e}") from e
    logger.debug("Read %d manifest files from %s", len(files), path)
    return files


def write_manifest_files(files: Mapping[str, str], out_dir: Path) -> list[Path]:
    """Replace *out_dir* with one file per rendered template.

    Returns:
        The paths written, sorted.
    """
    out_dir = Path(out_dir)
    if out_dir.exists():
        shutil.rmtree(out_dir)
    out_dir.mkdir(parents=True)

    written = []
    for name in sorted(files):
        target = out_dir / name
        target.write_text(files[name])
        written.append(target)
    logger.info("Wrote %d deployment files to %s", len(written), out_dir)
    return written

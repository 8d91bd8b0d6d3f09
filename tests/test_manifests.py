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

import pytest

from launch_kit.errors import ConfigurationError
from launch_kit.manifests import (
    manifests_from_rendered,
    parse_manifest,
    read_manifest_dir,
    split_documents,
    write_manifest_files,
)

TWO_DOCS = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: first
---
---
apiVersion: v1
kind: ConfigMap
metadata:
  name: second
"""


def test_split_drops_blank_documents():
    docs = split_documents("---\n" + TWO_DOCS + "---\n   \n")
    assert len(docs) == 2
    assert "first" in docs[0] and "second" in docs[1]


def test_split_single_document_without_separator():
    assert split_documents("kind: A\nmetadata:\n  name: a\n") == ["kind: A\nmetadata:\n  name: a"]


def test_rendered_files_ordered_by_name_then_document():
    manifests = manifests_from_rendered({
        "20-b.yaml": "kind: B\nmetadata:\n  name: b\n",
        "10-a.yaml": TWO_DOCS,
    })
    assert [(m.source, m.index, m.name) for m in manifests] == [
        ("10-a.yaml", 0, "first"),
        ("10-a.yaml", 1, "second"),
        ("20-b.yaml", 0, "b"),
    ]


@pytest.mark.parametrize(
    "document, message",
    [
        ("kind: [unterminated", "failed to parse"),
        ("- just\n- a list\n", "not a mapping"),
        ("metadata:\n  name: x\n", "no kind"),
        ("kind: ConfigMap\n", "no metadata.name"),
    ],
)
def test_parse_manifest_rejects(document, message):
    with pytest.raises(ConfigurationError, match=message):
        parse_manifest("bad.yaml", 0, document)


def test_manifest_accessors():
    m = parse_manifest("pool.yaml", 2, "apiVersion: nv-ipam.nvidia.com/v1alpha1\nkind: IPPool\n"
                       "metadata:\n  name: pool\n  namespace: ops\n")
    assert m.api_version == "nv-ipam.nvidia.com/v1alpha1"
    assert m.namespace == "ops"
    assert m.describe() == "IPPool/pool (pool.yaml#2)"


def test_write_replaces_directory(tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    (out / "stale.yaml").write_text("kind: Old\n")

    written = write_manifest_files({"b.yaml": "kind: B\n", "a.yaml": "kind: A\n"}, out)

    assert [p.name for p in written] == ["a.yaml", "b.yaml"]
    assert sorted(p.name for p in out.iterdir()) == ["a.yaml", "b.yaml"]


def test_read_manifest_dir_only_yaml(tmp_path):
    (tmp_path / "a.yaml").write_text("kind: A\n")
    (tmp_path / "b.yml").write_text("kind: B\n")
    (tmp_path / "README.md").write_text("guide")
    (tmp_path / "nested").mkdir()

    assert read_manifest_dir(tmp_path) == {"a.yaml": "kind: A\n", "b.yml": "kind: B\n"}


def test_read_missing_manifest_dir(tmp_path):
    with pytest.raises(ConfigurationError, match="does not exist"):
        read_manifest_dir(tmp_path / "missing")

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

from pathlib import Path

import pytest
import yaml

from launch_kit.capabilities import CapabilityModel, ClusterCapabilities, NodeCapabilities
from launch_kit.constants import PROFILES_DIR
from launch_kit.errors import ConfigurationError, NoApplicableProfileError
from launch_kit.intent import DeploymentIntent
from launch_kit.profiles import ProfileDefinition, evaluate, load_catalog, resolve_profile, select_profile


def make_capabilities(sriov: bool = False, rdma: bool = False, ib: bool = False) -> CapabilityModel:
    return CapabilityModel(capabilities=ClusterCapabilities(nodes=NodeCapabilities(sriov=sriov, rdma=rdma, ib=ib)))


def write_profile(root: Path, entry: str, plugin: str = "network-operator", **fields) -> Path:
    directory = root / entry
    directory.mkdir(parents=True)
    data = {"name": entry, "plugin": plugin, "templates": ["10-policy.yaml"], "deploymentGuide": "GUIDE.md"}
    data.update(fields)
    (directory / "profile.yaml").write_text(yaml.safe_dump(data))
    return directory


def make_profile(entry: str, **fields) -> ProfileDefinition:
    return ProfileDefinition.model_validate({"entry": entry, "name": entry, "plugin": "network-operator", **fields})


def test_infiniband_hostdevice_scenario_resolves(tmp_path):
    write_profile(
        tmp_path, "ib-rdma",
        profileRequirements={"fabric": "infiniband"},
        nodeCapabilities={"rdma": True},
    )
    caps = make_capabilities(sriov=False, rdma=True, ib=True)
    intent = DeploymentIntent(fabric="infiniband", deployment="hostdevice")

    resolved = resolve_profile(intent, caps, "network-operator", tmp_path)
    assert resolved.name == "ib-rdma"
    assert resolved.directory == tmp_path / "ib-rdma"
    assert resolved.template_paths == (tmp_path / "ib-rdma" / "10-policy.yaml",)
    assert resolved.deployment_guide_path == tmp_path / "ib-rdma" / "GUIDE.md"


def test_sriov_only_catalog_rejects_every_candidate(tmp_path):
    for entry in ("sriov-a", "sriov-b", "sriov-c"):
        write_profile(tmp_path, entry, nodeCapabilities={"sriov": True})
    caps = make_capabilities(sriov=False, rdma=True, ib=True)
    intent = DeploymentIntent(fabric="infiniband", deployment="hostdevice")

    with pytest.raises(NoApplicableProfileError) as exc:
        resolve_profile(intent, caps, "network-operator", tmp_path)
    assert len(exc.value.reasons) == 3
    assert exc.value.reasons[0].startswith("profile sriov-a is not applicable: cluster sriov capability")


def test_fabric_requirement_never_matches_other_fabric():
    profile = make_profile("eth", profileRequirements={"fabric": "ethernet"})
    for fabric in ("infiniband", "", "Ethernet"):
        reason = evaluate(profile, DeploymentIntent(fabric=fabric), make_capabilities())
        assert reason is not None
        assert "fabric" in reason
    assert evaluate(profile, DeploymentIntent(fabric="ethernet"), make_capabilities()) is None


def test_profile_without_capability_requirements_matches_any_model():
    profile = make_profile("any")
    for sriov in (False, True):
        for rdma in (False, True):
            for ib in (False, True):
                assert evaluate(profile, DeploymentIntent(), make_capabilities(sriov, rdma, ib)) is None


def test_spectrum_x_requirement_is_symmetric():
    only_sx = make_profile("sx", profileRequirements={"spectrumX": True})
    no_sx = make_profile("no-sx", profileRequirements={"spectrumX": False})
    caps = make_capabilities()

    assert evaluate(only_sx, DeploymentIntent(spectrum_x=True), caps) is None
    assert "only be deployed on Spectrum-X" in evaluate(only_sx, DeploymentIntent(spectrum_x=False), caps)
    assert evaluate(no_sx, DeploymentIntent(spectrum_x=False), caps) is None
    assert "not applicable to Spectrum-X" in evaluate(no_sx, DeploymentIntent(spectrum_x=True), caps)


def test_ai_requirement_is_symmetric():
    only_ai = make_profile("ai", profileRequirements={"ai": True})
    no_ai = make_profile("no-ai", profileRequirements={"ai": False})
    caps = make_capabilities()

    assert evaluate(only_ai, DeploymentIntent(ai=True), caps) is None
    assert evaluate(only_ai, DeploymentIntent(ai=False), caps) is not None
    assert evaluate(no_ai, DeploymentIntent(ai=False), caps) is None
    assert evaluate(no_ai, DeploymentIntent(ai=True), caps) is not None


def test_first_failing_predicate_is_reported():
    profile = make_profile(
        "strict",
        profileRequirements={"fabric": "ethernet", "deployment": "sriov", "multirail": True},
        nodeCapabilities={"sriov": True},
    )
    intent = DeploymentIntent(fabric="ethernet", deployment="hostdevice", multirail=False)
    assert "deployment type" in evaluate(profile, intent, make_capabilities())


def test_first_match_in_entry_order_wins_regardless_of_catalog_order():
    catalog = [make_profile("b-second"), make_profile("a-first"), make_profile("c-third")]
    chosen = select_profile(catalog, DeploymentIntent(), make_capabilities(), "network-operator")
    assert chosen.entry == "a-first"


def test_profiles_of_other_plugins_are_skipped():
    other = ProfileDefinition.model_validate({"entry": "a", "name": "a", "plugin": "other"})
    ours = make_profile("b")
    chosen = select_profile([other, ours], DeploymentIntent(), make_capabilities(), "network-operator")
    assert chosen.entry == "b"

    with pytest.raises(NoApplicableProfileError) as exc:
        select_profile([other], DeploymentIntent(), make_capabilities(), "network-operator")
    assert exc.value.reasons == []


def test_resolution_is_deterministic(tmp_path):
    write_profile(tmp_path, "eth", profileRequirements={"fabric": "ethernet"})
    write_profile(tmp_path, "ib", profileRequirements={"fabric": "infiniband"})
    caps = make_capabilities(rdma=True)

    outcomes = []
    for fabric in ("infiniband", "ethernet", "infiniband", "roce", "roce"):
        try:
            outcomes.append((fabric, resolve_profile(DeploymentIntent(fabric=fabric), caps, "network-operator", tmp_path).name))
        except NoApplicableProfileError as e:
            outcomes.append((fabric, tuple(e.reasons)))
    assert outcomes[0] == outcomes[2] == ("infiniband", "ib")
    assert outcomes[1] == ("ethernet", "eth")
    assert outcomes[3] == outcomes[4]


def test_catalog_is_reloaded_on_every_call(tmp_path):
    caps = make_capabilities()
    write_profile(tmp_path, "b", profileRequirements={"fabric": "ethernet"})
    assert resolve_profile(DeploymentIntent(fabric="ethernet"), caps, "network-operator", tmp_path).name == "b"

    write_profile(tmp_path, "a", profileRequirements={"fabric": "ethernet"})
    assert resolve_profile(DeploymentIntent(fabric="ethernet"), caps, "network-operator", tmp_path).name == "a"


def test_malformed_profile_is_a_configuration_error(tmp_path):
    (tmp_path / "broken").mkdir()
    (tmp_path / "broken" / "profile.yaml").write_text("name: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_catalog(tmp_path)


def test_missing_profiles_dir_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_catalog(tmp_path / "missing")


def test_packaged_catalog_loads_sorted():
    catalog = load_catalog(PROFILES_DIR)
    entries = [p.entry for p in catalog]
    assert entries == sorted(entries)
    assert {p.plugin for p in catalog} == {"network-operator"}
    for profile in catalog:
        for template in profile.templates:
            assert (PROFILES_DIR / profile.entry / template).is_file()
        assert (PROFILES_DIR / profile.entry / profile.deployment_guide).is_file()


def test_packaged_catalog_resolves_common_intents():
    caps = make_capabilities(sriov=True, rdma=True, ib=False)
    sriov = resolve_profile(DeploymentIntent(fabric="ethernet", deployment="sriov"), caps, "network-operator", PROFILES_DIR)
    assert sriov.definition.entry == "sriov-rdma"

    multirail = DeploymentIntent(fabric="ethernet", deployment="sriov", multirail=True, spectrum_x=True, ai=True)
    assert resolve_profile(multirail, caps, "network-operator", PROFILES_DIR).definition.entry == "spectrum-x-ai"

    ib_caps = make_capabilities(sriov=False, rdma=True, ib=True)
    ipoib = DeploymentIntent(fabric="infiniband", deployment="rdma_shared")
    assert resolve_profile(ipoib, ib_caps, "network-operator", PROFILES_DIR).definition.entry == "ipoib-rdma-shared"

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

"""Profile catalog loading and deterministic profile resolution.

A catalog is a directory with one sub-directory per profile, each holding a
``profile.yaml`` that declares the intent and capability predicates under
which the profile applies, plus its manifest templates and deployment guide.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from launch_kit import logger
from launch_kit.capabilities import CapabilityModel
from launch_kit.constants import PROFILE_FILE_NAME
from launch_kit.errors import ConfigurationError, NoApplicableProfileError
from launch_kit.intent import DeploymentIntent


# ============================================================================
# Definitions
# ============================================================================

class IntentRequirements(BaseModel):
    """Partial predicate over DeploymentIntent; ``None`` means "don't care"."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    fabric: str | None = None
    deployment: str | None = None
    multirail: bool | None = None
    spectrum_x: bool | None = Field(default=None, alias="spectrumX")
    ai: bool | None = None

    @field_validator("fabric", "deployment")
    @classmethod
    def _empty_is_unset(cls, value: str | None) -> str | None:
        return value or None


class CapabilityRequirements(BaseModel):
    """Partial predicate over the CapabilityModel booleans."""

    model_config = ConfigDict(frozen=True)

    sriov: bool | None = None
    rdma: bool | None = None
    ib: bool | None = None


class ProfileDefinition(BaseModel):
    """One catalog entry, read-only after load.

    Attributes:
        entry: Catalog entry (directory) name; the sort key of the catalog.
        name: Display name.
        plugin: Name of the plugin that owns the profile.
        description: Human-readable summary.
        profile_requirements: Intent predicate.
        node_capabilities: Capability predicate.
        deployment_guide: Guide path, relative to the entry directory.
        templates: Manifest template paths, relative to the entry directory.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    entry: str = ""
    name: str
    plugin: str
    description: str = ""
    profile_requirements: IntentRequirements = Field(default=IntentRequirements(), alias="profileRequirements")
    node_capabilities: CapabilityRequirements = Field(default=CapabilityRequirements(), alias="nodeCapabilities")
    deployment_guide: str = Field(default="", alias="deploymentGuide")
    templates: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedProfile:
    """A ProfileDefinition bound to the directory its files live in.

    Attributes:
        definition: The matched profile.
        directory: Directory the relative paths were resolved against.
        template_paths: Template paths in declared order.
        deployment_guide_path: Deployment guide path, or None if the profile has none.
    """

    definition: ProfileDefinition
    directory: Path
    template_paths: tuple[Path, ...]
    deployment_guide_path: Path | None

    @classmethod
    def bind(cls, definition: ProfileDefinition, directory: Path) -> ResolvedProfile:
        guide = directory / definition.deployment_guide if definition.deployment_guide else None
        return cls(
            definition=definition,
            directory=directory,
            template_paths=tuple(directory / t for t in definition.templates),
            deployment_guide_path=guide,
        )

    @property
    def name(self) -> str:
        return self.definition.name


# ============================================================================
# Catalog
# ============================================================================

def load_profile(path: Path) -> ProfileDefinition:
    """Load one ``profile.yaml``.

    Raises:
        ConfigurationError: If the file is unreadable or malformed.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"failed to read profile manifest {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"profile manifest {path} must be a YAML mapping")
    try:
        return ProfileDefinition.model_validate({**data, "entry": path.parent.name})
    except ValidationError as e:
        raise ConfigurationError(f"invalid profile manifest {path}: {e}") from e


def load_catalog(profiles_dir: Path) -> list[ProfileDefinition]:
    """Load every profile in *profiles_dir*, sorted by entry name.

    Plain files at the top level are ignored.

    Raises:
        ConfigurationError: If the directory or any profile manifest is unusable.
    """
    profiles_dir = Path(profiles_dir)
    if not profiles_dir.is_dir():
        raise ConfigurationError(f"profiles directory does not exist: {profiles_dir}")

    entries = sorted(p for p in profiles_dir.iterdir() if p.is_dir())
    catalog = [load_profile(entry / PROFILE_FILE_NAME) for entry in entries]
    logger.debug("Loaded %d profiles from %s", len(catalog), profiles_dir)
    return catalog


# ============================================================================
# Resolution
# ============================================================================

def _flag_mismatch(required: bool | None, actual: bool, label: str) -> str | None:
    if required is None or required == actual:
        return None
    if required:
        return f"profile can only be deployed on {label} clusters"
    return f"profile is not applicable to {label} clusters"


def evaluate(profile: ProfileDefinition, intent: DeploymentIntent, capabilities: CapabilityModel) -> str | None:
    """Check one profile against an intent and a capability model.

    Returns:
        None if every specified predicate holds, otherwise a reason naming the
        first predicate that failed.
    """
    req = profile.profile_requirements
    if req.fabric is not None and req.fabric != intent.fabric:
        return f"selected fabric type does not match profile requirements: {req.fabric}"
    if req.deployment is not None and req.deployment != intent.deployment:
        return f"selected deployment type does not match profile requirements: {req.deployment}"
    if req.multirail is not None and req.multirail != intent.multirail:
        return f"selected multirail setting does not match profile requirements: {str(req.multirail).lower()}"

    reason = _flag_mismatch(req.spectrum_x, intent.spectrum_x, "Spectrum-X")
    if reason:
        return reason
    reason = _flag_mismatch(req.ai, intent.ai, "AI")
    if reason:
        return reason

    flags = capabilities.capability_flags()
    caps = profile.node_capabilities
    for key in ("sriov", "rdma", "ib"):
        required = getattr(caps, key)
        if required is not None and required != flags[key]:
            return f"cluster {key} capability does not match profile requirements: {str(required).lower()}"
    return None


def select_profile(
    catalog: list[ProfileDefinition],
    intent: DeploymentIntent,
    capabilities: CapabilityModel,
    plugin: str,
) -> ProfileDefinition:
    """Pick the first catalog entry owned by *plugin* that accepts the inputs.

    Entries are considered in entry-name order regardless of the order of
    *catalog*.

    Raises:
        NoApplicableProfileError: With one reason per rejected candidate.
    """
    reasons: list[str] = []
    for profile in sorted(catalog, key=lambda p: p.entry):
        if profile.plugin != plugin:
            continue
        reason = evaluate(profile, intent, capabilities)
        if reason is None:
            logger.info("Found applicable profile %s for plugin %s", profile.name, plugin)
            return profile
        reasons.append(f"profile {profile.entry} is not applicable: {reason}")

    logger.info("No applicable profile found for plugin %s", plugin)
    for reason in reasons:
        logger.debug(reason)
    raise NoApplicableProfileError(plugin, reasons)


def resolve_profile(
    intent: DeploymentIntent,
    capabilities: CapabilityModel,
    plugin: str,
    profiles_dir: Path,
) -> ResolvedProfile:
    """Load the catalog afresh and resolve one profile for *plugin*.

    Returns:
        The matching profile with its paths bound to its entry directory.
    """
    logger.info("Finding applicable profile for %s", intent.model_dump(by_alias=True))
    profile = select_profile(load_catalog(profiles_dir), intent, capabilities, plugin)
    return ResolvedProfile.bind(profile, Path(profiles_dir) / profile.entry)

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

"""Deployment intent, and inferring it from a free-text prompt with an LLM."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import openai
from pydantic import BaseModel, ConfigDict, Field

from launch_kit import logger
from launch_kit.capabilities import CapabilityModel
from launch_kit.constants import (
    CONFIDENCE_LOW,
    LLM_API_VERSION,
    LLM_MODEL,
    LLM_TEMPERATURE,
    SUPPORTED_LLM_VENDORS,
    SYSTEM_PROMPT_FILE,
)
from launch_kit.errors import ConfigurationError, IntentInferenceError, LowConfidenceError


class DeploymentIntent(BaseModel):
    """What the operator wants deployed.

    Attributes:
        fabric: Network fabric, e.g. ``ethernet`` or ``infiniband``.
        deployment: Deployment style, e.g. ``sriov``, ``hostdevice`` or ``rdma_shared``.
        multirail: Whether every PF gets its own network.
        spectrum_x: Whether the cluster runs Spectrum-X.
        ai: Whether the deployment targets AI workloads.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    fabric: str = ""
    deployment: str = ""
    multirail: bool = False
    spectrum_x: bool = Field(default=False, alias="spectrumX")
    ai: bool = False


def intent_from_flags(
    fabric: str = "",
    deployment_type: str = "",
    multirail: bool = False,
    spectrum_x: bool = False,
    ai: bool = False,
) -> DeploymentIntent:
    """Build an intent entirely from command-line flags."""
    return DeploymentIntent(
        fabric=fabric,
        deployment=deployment_type,
        multirail=multirail,
        spectrum_x=spectrum_x,
        ai=ai,
    )


def intent_from_inference(fields: dict[str, str]) -> DeploymentIntent:
    """Build an intent entirely from an inference reply.

    Boolean fields are true only for the exact string ``"true"``.
    """
    return DeploymentIntent(
        fabric=fields.get("fabric", ""),
        deployment=fields.get("deploymentType", ""),
        multirail=fields.get("multirail") == "true",
        spectrum_x=fields.get("spectrumX") == "true",
        ai=fields.get("ai") == "true",
    )


# ============================================================================
# Inference
# ============================================================================

@dataclass(frozen=True)
class InferenceResult:
    """Reply from an intent inference call.

    Attributes:
        fields: Intent fields keyed by their wire names.
        confidence: Confidence label reported with the answer.
        reasoning: The model's explanation for its answer.
    """

    fields: dict[str, str] = field(default_factory=dict)
    confidence: str = ""
    reasoning: str = ""

    @classmethod
    def from_reply(cls, reply: dict[str, str]) -> InferenceResult:
        return cls(
            fields=dict(reply),
            confidence=reply.get("confidence", ""),
            reasoning=reply.get("reasoning", ""),
        )


class IntentInference(Protocol):
    def infer(self, prompt_text: str, capabilities: dict, addenda: list[str]) -> InferenceResult: ...


def require_confident(result: InferenceResult) -> InferenceResult:
    """Reject a low-confidence inference.

    Raises:
        LowConfidenceError: If the reply's confidence label is ``low``.
    """
    if result.confidence.lower() == CONFIDENCE_LOW:
        raise LowConfidenceError(result.reasoning)
    return result


def build_prompt(system_prompt: str, addenda: list[str], capabilities: dict, user_prompt: str) -> str:
    """Assemble the single prompt sent to the model."""
    parts = [system_prompt, *addenda]
    context = json.dumps(capabilities, sort_keys=True)
    return "\n".join(parts) + f"\n{context}\nUSER:\n{user_prompt}"


def parse_reply(text: str) -> dict[str, str]:
    """Decode a model reply into a flat mapping of strings.

    Raises:
        IntentInferenceError: If the reply is not a JSON object of strings.
    """
    try:
        reply = json.loads(text)
    except json.JSONDecodeError as e:
        raise IntentInferenceError(f"LLM reply is not valid JSON: {e}") from e
    if not isinstance(reply, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in reply.items()
    ):
        raise IntentInferenceError("LLM reply must be a JSON object of string values")
    return reply


class OpenAIIntentInference:
    """Intent inference backed by an Azure-hosted OpenAI deployment."""

    def __init__(
        self,
        vendor: str,
        api_url: str,
        api_key: str,
        model: str = LLM_MODEL,
        system_prompt_file: Path = SYSTEM_PROMPT_FILE,
        client: openai.AzureOpenAI | None = None,
    ) -> None:
        if vendor not in SUPPORTED_LLM_VENDORS:
            raise ConfigurationError(f"unsupported LLM vendor: {vendor}")
        self.vendor = vendor
        self.model = model
        self.system_prompt_file = Path(system_prompt_file)
        if client is None:
            if not api_url or not api_key:
                raise ConfigurationError("--llm-api-url and --llm-api-key are required for prompt-based selection")
            client = openai.AzureOpenAI(
                api_key=api_key,
                azure_endpoint=api_url,
                api_version=LLM_API_VERSION,
            )
        self.client = client

    def infer(self, prompt_text: str, capabilities: dict, addenda: list[str]) -> InferenceResult:
        """Ask the model for an intent.

        Args:
            prompt_text: The operator's free-text request.
            capabilities: The capability model as a JSON-serializable dict.
            addenda: Plugin-specific additions to the system prompt.

        Returns:
            The decoded reply.

        Raises:
            IntentInferenceError: If the call fails or the reply is unusable.
        """
        try:
            system_prompt = self.system_prompt_file.read_text()
        except OSError as e:
            raise ConfigurationError(f"failed to read system prompt {self.system_prompt_file}: {e}") from e

        prompt = build_prompt(system_prompt, addenda, capabilities, prompt_text)
        logger.debug("User prompt: %s", prompt_text)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=LLM_TEMPERATURE,
            )
        except openai.OpenAIError as e:
            raise IntentInferenceError(f"LLM request to {self.vendor} failed: {e}") from e

        content = response.choices[0].message.content or ""
        logger.debug("LLM response: %s", content)
        return InferenceResult.from_reply(parse_reply(content))


def infer_intent(
    inference: IntentInference,
    prompt_file: Path,
    capabilities: CapabilityModel,
    addenda: list[str],
) -> InferenceResult:
    """Read the prompt file and run a confident inference over it."""
    try:
        prompt_text = Path(prompt_file).read_text()
    except OSError as e:
        raise ConfigurationError(f"failed to read prompt file {prompt_file}: {e}") from e
    return require_confident(inference.infer(prompt_text, capabilities.to_dict(), addenda))


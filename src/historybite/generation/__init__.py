"""Generation stages: prompt source, augmentation, Claude call, normalization.

Usage:
    from historybite.generation import ClaudeClient, GenerationRequest, normalize_response

    request = GenerationRequest.create(read_prompt(prompt_file))
    async with ClaudeClient(api_key=key) as client:
        payload = normalize_response(await client.generate(request.augmented_prompt))
"""

from .client import ClaudeClient
from .errors import (
    ConfigError,
    GenerationError,
    NormalizationError,
    PromptSourceError,
    UpstreamError,
)
from .normalizer import normalize_response, repair_json
from .prompt import GenerationRequest, augment_prompt, read_prompt

__all__ = [
    # Client
    "ClaudeClient",
    # Errors
    "GenerationError",
    "ConfigError",
    "UpstreamError",
    "NormalizationError",
    "PromptSourceError",
    # Prompt
    "GenerationRequest",
    "augment_prompt",
    "read_prompt",
    # Normalizer
    "normalize_response",
    "repair_json",
]

#!filepath: src/jobscrabber_app/llm/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class WireProtocol(str, Enum):
    """Request/response shape shared by a family of providers."""

    OPENAI_COMPATIBLE = "openai-compat"
    GEMINI = "gemini"


@dataclass(frozen=True, slots=True)
class ProviderDescriptor:
    """Static description of one LLM vendor.

    Attributes:
        name: Unique provider id used as key in user pools.
        wire_protocol: Request/response family.
        endpoint_template: Endpoint URL, may contain ``{model}``.
        models: Model fallback list, primary first.
        extra_headers: Static headers sent with every request.
        label: Human readable name.
        key_prefix: Expected prefix of a key, a hint for settings UIs.
        free_limit: Free tier summary shown next to the provider.
        docs_url: Where users create keys.
    """

    name: str
    wire_protocol: WireProtocol
    endpoint_template: str
    models: tuple[str, ...]
    extra_headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    label: str = ""
    key_prefix: str = ""
    free_limit: str = ""
    docs_url: str = ""

    def endpoint_for(self, model: str) -> str:
        return self.endpoint_template.replace("{model}", model)

    def looks_like_key(self, api_key: str) -> bool:
        if not self.key_prefix:
            return True
        return str(api_key or "").startswith(self.key_prefix)


@dataclass(frozen=True, slots=True)
class Candidate:
    """One (provider, key) pair eligible for a single attempt."""

    provider: str
    api_key: str
    key_index: int = 0

    def __repr__(self) -> str:
        return f"Candidate(provider={self.provider!r}, key_index={self.key_index})"

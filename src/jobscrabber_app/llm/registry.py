#!filepath: src/jobscrabber_app/llm/registry.py
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from jobscrabber_app.llm.errors import ProviderNotFoundError
from jobscrabber_app.llm.types import ProviderDescriptor, WireProtocol
from jobscrabber_app.settings import get_ai_settings

GROQ = ProviderDescriptor(
    name="groq",
    wire_protocol=WireProtocol.OPENAI_COMPATIBLE,
    endpoint_template="https://api.groq.com/openai/v1/chat/completions",
    models=("llama-3.3-70b-versatile", "llama-3.1-8b-instant"),
    label="Groq",
    key_prefix="gsk_",
    free_limit="1,000 req/day",
    docs_url="https://console.groq.com/keys",
)

GEMINI = ProviderDescriptor(
    name="gemini",
    wire_protocol=WireProtocol.GEMINI,
    endpoint_template=(
        "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    ),
    models=("gemini-2.0-flash", "gemini-1.5-flash"),
    label="Google Gemini",
    key_prefix="AIza",
    free_limit="1,500 req/day",
    docs_url="https://aistudio.google.com/app/apikey",
)


def _openrouter() -> ProviderDescriptor:
    s = get_ai_settings()
    return ProviderDescriptor(
        name="openrouter",
        wire_protocol=WireProtocol.OPENAI_COMPATIBLE,
        endpoint_template="https://openrouter.ai/api/v1/chat/completions",
        models=(
            "meta-llama/llama-3.3-70b-instruct:free",
            "qwen/qwen-2.5-72b-instruct:free",
        ),
        extra_headers=MappingProxyType(
            {"HTTP-Referer": s.app_url, "X-Title": s.app_title}
        ),
        label="OpenRouter",
        key_prefix="sk-or-",
        free_limit="Free models available",
        docs_url="https://openrouter.ai/keys",
    )


class ProviderRegistry:
    """Read-only catalog of known providers.

    Iteration order is the tie-break order when two pool entries share a
    priority.
    """

    def __init__(self, descriptors: Iterable[ProviderDescriptor]) -> None:
        by_name: dict[str, ProviderDescriptor] = {}
        for d in descriptors:
            if d.name in by_name:
                raise ValueError(f"Duplicate provider: {d.name}")
            if not d.models:
                raise ValueError(f"Provider {d.name} declares no models")
            by_name[d.name] = d
        self._by_name: Mapping[str, ProviderDescriptor] = MappingProxyType(by_name)

    def describe(self, name: str) -> ProviderDescriptor:
        try:
            return self._by_name[str(name)]
        except KeyError:
            raise ProviderNotFoundError(str(name)) from None

    def names(self) -> list[str]:
        return list(self._by_name)

    def order_of(self, name: str) -> int:
        names = self.names()
        return names.index(name) if name in names else len(names)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[ProviderDescriptor]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)


_DEFAULT: ProviderRegistry | None = None


def default_registry() -> ProviderRegistry:
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = ProviderRegistry([GROQ, GEMINI, _openrouter()])
    return _DEFAULT


def describe(name: str) -> ProviderDescriptor:
    """Look up a built-in provider.

    Args:
        name: Provider id, e.g. ``groq``.

    Returns:
        ProviderDescriptor: The static descriptor.

    Raises:
        ProviderNotFoundError: If the provider is unknown.
    """
    return default_registry().describe(name)


def provider_names() -> list[str]:
    return default_registry().names()

#!filepath: src/jobscrabber_app/llm/__init__.py
from jobscrabber_app.llm.errors import (
    AllProvidersExhaustedError,
    LLMError,
    NoProvidersConfiguredError,
    ProviderNotFoundError,
    UnparseableResponseError,
)
from jobscrabber_app.llm.invoker import ProviderInvoker
from jobscrabber_app.llm.normalizer import extract_json
from jobscrabber_app.llm.registry import ProviderRegistry, default_registry, describe
from jobscrabber_app.llm.results import (
    Completion,
    CompletionResult,
    InvalidKey,
    RateLimited,
    TransientError,
)
from jobscrabber_app.llm.router import AIRouter, build_candidates
from jobscrabber_app.llm.types import Candidate, ProviderDescriptor, WireProtocol

__all__ = [
    "AIRouter",
    "AllProvidersExhaustedError",
    "Candidate",
    "Completion",
    "CompletionResult",
    "InvalidKey",
    "LLMError",
    "NoProvidersConfiguredError",
    "ProviderDescriptor",
    "ProviderInvoker",
    "ProviderNotFoundError",
    "ProviderRegistry",
    "RateLimited",
    "TransientError",
    "UnparseableResponseError",
    "WireProtocol",
    "build_candidates",
    "default_registry",
    "describe",
    "extract_json",
]

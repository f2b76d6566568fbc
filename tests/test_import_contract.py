#!filepath: tests/test_import_contract.py
from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True, slots=True)
class ImportContract:
    """A list of import targets that must remain stable.

    Args:
        targets: Import strings to validate.
    """

    targets: tuple[str, ...]


def _contract() -> ImportContract:
    return ImportContract(
        targets=(
            "jobscrabber_app",
            "jobscrabber_app.settings",
            "jobscrabber_app.cli",
            "jobscrabber_app.insights",
            "jobscrabber_app.llm",
            "jobscrabber_app.llm.router",
            "jobscrabber_app.llm.invoker",
            "jobscrabber_app.llm.normalizer",
            "jobscrabber_app.llm.probe",
            "jobscrabber_app.keypool",
            "jobscrabber_app.keypool.store",
            "jobscrabber_app.utils.rate_limit",
        )
    )


def _import_all(targets: Iterable[str]) -> None:
    """Import all targets.

    Raises:
        ImportError: If any import fails.
    """
    for t in targets:
        importlib.import_module(t)


def test_import_contract() -> None:
    """Validate that stable import targets remain importable."""
    _import_all(_contract().targets)

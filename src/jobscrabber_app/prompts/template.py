#!filepath: src/jobscrabber_app/prompts/template.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

_PLACEHOLDER_RE = re.compile(r"\{\{([A-Z0-9_]+)\}\}")


@dataclass(frozen=True, slots=True)
class PromptTemplate:
    """Strict prompt template renderer.

    Placeholders are uppercase tokens wrapped as {{TOKEN}}. Single braces are
    left alone so JSON examples inside a prompt survive rendering.

    Args:
        name: Template identifier used for error messages.
        text: Raw template contents.
    """

    name: str
    text: str

    @property
    def placeholders(self) -> set[str]:
        return {m.group(1) for m in _PLACEHOLDER_RE.finditer(self.text or "")}

    def render(self, values: Mapping[str, str]) -> str:
        """Render the template.

        Args:
            values: Mapping placeholder name to replacement text.

        Returns:
            str: Rendered prompt with no unresolved placeholders.

        Raises:
            ValueError: If a placeholder has no value.
        """
        missing = sorted(p for p in self.placeholders if p not in values)
        if missing:
            raise ValueError(
                f"Prompt {self.name} missing values for {', '.join(missing)}"
            )

        # single pass, so values that contain {{X}} are not expanded again
        return _PLACEHOLDER_RE.sub(
            lambda m: str(values.get(m.group(1)) or ""), self.text
        )

"""JSON prompt catalog with `string.Template` rendering."""
from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any


PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


class PromptCatalog:
    """Loads prompts from a JSON file and reloads when the file changes on disk.

    Keys are dotted paths (``"deep_analysis.user"``). A leaf may be a string or
    a list of lines, which is joined with newlines.
    """

    def __init__(self, path: Path = PROMPTS_PATH):
        self.path = Path(path)
        self._cache: dict[str, Any] | None = None
        self._mtime_ns: int | None = None

    def _load(self) -> dict[str, Any]:
        mtime_ns = self.path.stat().st_mtime_ns
        if self._cache is not None and self._mtime_ns == mtime_ns:
            return self._cache

        payload = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("Prompt catalog must be a JSON object.")
        self._cache = payload
        self._mtime_ns = mtime_ns
        return payload

    def template(self, key: str) -> str:
        node: Any = self._load()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                raise KeyError(f"Prompt key not found: {key}")
            node = node[part]
        if isinstance(node, list):
            node = "\n".join(str(line) for line in node)
        if not isinstance(node, str):
            raise TypeError(f"Prompt key must map to a string: {key}")
        return node

    def render(self, key: str, **values: Any) -> str:
        template = Template(self.template(key))
        try:
            return template.substitute(**values)
        except KeyError as exc:
            missing = str(exc.args[0])
            raise KeyError(f"Missing template value '{missing}' for prompt '{key}'") from exc

    def clear(self) -> None:
        self._cache = None
        self._mtime_ns = None


_default_catalog = PromptCatalog()


def render_prompt(key: str, **values: Any) -> str:
    return _default_catalog.render(key, **values)


def clear_prompt_cache() -> None:
    _default_catalog.clear()

"""Webhook template rendering via {{var}} substitution."""

from __future__ import annotations

import re
from typing import Any, Mapping

_VAR_RE = re.compile(r"\{\{\s*([A-Za-z_][\w.-]*)\s*\}\}")


def render(template: str, variables: Mapping[str, str]) -> str:
    def replacer(m: re.Match) -> str:
        key = m.group(1)
        return variables.get(key, m.group(0))

    return _VAR_RE.sub(replacer, template)


def render_data(data: Any, variables: Mapping[str, str]) -> Any:
    """Render every string inside a JSON-like structure; other scalars pass through."""
    if isinstance(data, str):
        return render(data, variables)
    if isinstance(data, dict):
        return {render(str(k), variables): render_data(v, variables) for k, v in data.items()}
    if isinstance(data, list):
        return [render_data(v, variables) for v in data]
    return data

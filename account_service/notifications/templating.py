"""Jinja2 rendering for outbound account emails."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


class JinjaTemplateRenderer:
    """Render HTML templates from a directory on disk."""

    def __init__(self, template_dir: str | Path) -> None:
        template_path = Path(template_dir)
        if not template_path.is_dir():
            raise ValueError(f"Template directory does not exist: {template_dir}")
        self._env = Environment(
            loader=FileSystemLoader(template_path),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        return self._env.get_template(template_name).render(**context)

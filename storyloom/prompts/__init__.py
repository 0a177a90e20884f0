"""Prompt templates for assistant requests."""

import re
from pathlib import Path
from typing import Dict, Optional
import yaml
from jinja2 import Environment, FileSystemLoader, Template


# A section marker must sit alone on its line in the template source
SECTION_PATTERN = re.compile(r'^\[(SYSTEM|USER)\][ \t]*$', re.MULTILINE)


class PromptTemplate:
    """The separately compiled [SYSTEM] and [USER] sections of one prompt."""

    def __init__(self, system: Optional[Template], user: Optional[Template]):
        self.system = system
        self.user = user

    def render(self, **variables) -> Dict[str, str]:
        """Render both sections; a missing section renders as ""."""
        return {
            "system": self.system.render(**variables).strip() if self.system else "",
            "user": self.user.render(**variables).strip() if self.user else "",
        }


class PromptLoader:
    """
    Load and render the assistant's Jinja2 prompt templates.

    A template file is split into its [SYSTEM] and [USER] sections before
    anything is rendered, so marker text inside variables (a chat message,
    a chapter being summarized) is passed through untouched. Text outside
    any marker counts as the user prompt. Per-prompt temperatures live in
    config.yaml next to the templates.

    Usage:
        loader = PromptLoader()
        prompts = loader.render("assistant/expand", selection="...")

        # Returns: {"system": "...", "user": "..."}
    """

    def __init__(self, prompts_dir: Optional[Path] = None):
        """
        Initialize prompt loader.

        Args:
            prompts_dir: Directory holding the .j2 templates and config.yaml
                (defaults to this package)
        """
        self.prompts_dir = Path(prompts_dir) if prompts_dir else Path(__file__).parent

        self.env = Environment(
            loader=FileSystemLoader(str(self.prompts_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True
        )

        self.metadata = self._load_metadata()
        self._templates: Dict[str, PromptTemplate] = {}

    def _load_metadata(self) -> Dict[str, dict]:
        config_file = self.prompts_dir / "config.yaml"
        if not config_file.exists():
            return {}
        with open(config_file, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def split_sections(source: str) -> Dict[str, str]:
        """
        Split raw template source into section sources.

        Returns:
            Mapping of "system" / "user" to the template text of that section
        """
        parts = SECTION_PATTERN.split(source)
        if len(parts) == 1:
            return {"user": source}

        sections: Dict[str, str] = {}
        # parts alternates: preamble, name, body, name, body, ...
        for name, body in zip(parts[1::2], parts[2::2]):
            key = name.lower()
            sections[key] = sections.get(key, "") + body
        return sections

    def load(self, prompt_name: str) -> PromptTemplate:
        """
        Compile a prompt by name (e.g. "assistant/chat"), cached.

        Raises:
            jinja2.TemplateNotFound: If no such template exists
        """
        if prompt_name not in self._templates:
            source, _, _ = self.env.loader.get_source(self.env, f"{prompt_name}.j2")
            sections = self.split_sections(source)
            self._templates[prompt_name] = PromptTemplate(
                system=self.env.from_string(sections["system"]) if "system" in sections else None,
                user=self.env.from_string(sections["user"]) if "user" in sections else None
            )
        return self._templates[prompt_name]

    def render(self, prompt_name: str, **variables) -> Dict[str, str]:
        """Render a prompt into its 'system' and 'user' strings."""
        return self.load(prompt_name).render(**variables)

    def get_temperature(self, prompt_name: str, default: float = 0.7) -> float:
        """Temperature configured for a prompt, or default."""
        return self.metadata.get(prompt_name, {}).get('temperature', default)


_loader: Optional[PromptLoader] = None


def get_prompt_loader() -> PromptLoader:
    """Shared PromptLoader for the bundled templates."""
    global _loader
    if _loader is None:
        _loader = PromptLoader()
    return _loader

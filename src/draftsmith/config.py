"""
Configuration for draftsmith.

Settings can be loaded from YAML files or constructed programmatically. A
couple of environment variables override the defaults so the CLI can be
pointed at a different model or pricing table without a config file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_MODEL = "claude-sonnet-4-5"

# Input token count above which a model's long-context pricing applies
LONG_CONTEXT_THRESHOLD = 200_000

# Per-million-token rates used when a model is missing from the pricing table
FALLBACK_INPUT_RATE = 3.0
FALLBACK_OUTPUT_RATE = 15.0


def get_default_model() -> str:
    """Get the default model from the environment, falling back to DEFAULT_MODEL."""
    return os.environ.get("DRAFTSMITH_MODEL", "").strip() or DEFAULT_MODEL


def get_models_file() -> Path | None:
    """Get the pricing table path from the environment, if set."""
    val = os.environ.get("DRAFTSMITH_MODELS_FILE", "").strip()
    return Path(val) if val else None


@dataclass
class DraftsmithConfig:
    """
    Main configuration for draftsmith.

    Example YAML:
        default_model: claude-sonnet-4-5
        models_file: ~/.draftsmith/models.yaml
        skills_dir: ./skills
        long_context_threshold: 200000
        fallback_pricing:
          input: 3.0
          output: 15.0
        max_output_tokens: 8192
    """

    # Models and pricing
    default_model: str = field(default_factory=get_default_model)
    models_file: Path | None = field(default_factory=get_models_file)
    long_context_threshold: int = LONG_CONTEXT_THRESHOLD
    fallback_input_rate: float = FALLBACK_INPUT_RATE
    fallback_output_rate: float = FALLBACK_OUTPUT_RATE

    # Planning
    skills_dir: Path | None = None
    default_max_context_tokens: int = 20_000
    max_output_tokens: int = 8192  # also the output allowance in plan estimates

    # Persistence
    cost_file: str = ".ai_cost.json"
    drafts_dir: str = ".drafts"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DraftsmithConfig:
        """Create config from a dictionary."""
        fallback = data.get("fallback_pricing", {}) or {}
        models_file = data.get("models_file")
        skills_dir = data.get("skills_dir")
        return cls(
            default_model=data.get("default_model") or get_default_model(),
            models_file=Path(models_file).expanduser() if models_file else get_models_file(),
            long_context_threshold=data.get("long_context_threshold", LONG_CONTEXT_THRESHOLD),
            fallback_input_rate=fallback.get("input", FALLBACK_INPUT_RATE),
            fallback_output_rate=fallback.get("output", FALLBACK_OUTPUT_RATE),
            skills_dir=Path(skills_dir).expanduser() if skills_dir else None,
            default_max_context_tokens=data.get("default_max_context_tokens", 20_000),
            max_output_tokens=data.get("max_output_tokens", 8192),
            cost_file=data.get("cost_file", ".ai_cost.json"),
            drafts_dir=data.get("drafts_dir", ".drafts"),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> DraftsmithConfig:
        """Load config from a YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> DraftsmithConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "default_model": self.default_model,
            "models_file": str(self.models_file) if self.models_file else None,
            "long_context_threshold": self.long_context_threshold,
            "fallback_pricing": {
                "input": self.fallback_input_rate,
                "output": self.fallback_output_rate,
            },
            "skills_dir": str(self.skills_dir) if self.skills_dir else None,
            "default_max_context_tokens": self.default_max_context_tokens,
            "max_output_tokens": self.max_output_tokens,
            "cost_file": self.cost_file,
            "drafts_dir": self.drafts_dir,
        }

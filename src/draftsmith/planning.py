"""
Planning: turning a skill request into a priced, context-resolved Plan.

A skill is a YAML file describing a behavior profile:

```yaml
name: scene-draft
display_name: Scene Draft
description: Draft a scene from its outline
default_model: claude-sonnet-4-5
temperature: 0.8
system_prompt: |
  You are a fiction co-writer. Write the scene in {pov}.
context:
  always_include:
    - overview/overview.md
  include_if_exists:
    - books/{book}/chapters/{chapter}/{scene}/outline.md
  max_context_tokens: 20000
```

Path templates may use ``{book}``, ``{chapter}`` and ``{scene}`` from the
request scope; templates whose variables are missing are skipped.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from draftsmith.config import DraftsmithConfig
from draftsmith.errors import PlanningError, PlanNotFoundError
from draftsmith.logging import get_logger
from draftsmith.model_registry import ModelRegistry
from draftsmith.models import ContextFileInfo, ContextMode, ContextScope, Plan

logger = get_logger("planning")

SKILL_SUFFIXES = (".yaml", ".yml")


def estimate_tokens(text: str) -> int:
    """Rough token count (about four characters per token)."""
    return len(text) // 4


def format_cost(cost: float) -> str:
    """Render dollars with four decimals under a cent, two otherwise."""
    if cost < 0.01:
        return f"${cost:.4f}"
    return f"${cost:.2f}"


def first_paragraph(text: str) -> str:
    """The first non-heading paragraph of a markdown body."""
    for block in text.strip().split("\n\n"):
        block = block.strip()
        if block and not block.startswith("#"):
            return block
    return text.strip().split("\n\n", 1)[0].strip()


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


@dataclass
class SkillContext:
    """Which project files a skill reads."""

    always_include: list[str] = field(default_factory=list)
    include_if_exists: list[str] = field(default_factory=list)
    max_context_tokens: int | None = None


@dataclass
class SkillDefinition:
    """A named behavior profile: prompt, model preference and context rules."""

    name: str
    display_name: str = ""
    description: str = ""
    default_model: str = ""
    temperature: float = 0.7
    system_prompt: str = ""
    context: SkillContext = field(default_factory=SkillContext)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillDefinition:
        context = data.get("context", {}) or {}
        return cls(
            name=data["name"],
            display_name=data.get("display_name", ""),
            description=data.get("description", ""),
            default_model=data.get("default_model", ""),
            temperature=float(data.get("temperature", 0.7)),
            system_prompt=data.get("system_prompt", ""),
            context=SkillContext(
                always_include=list(context.get("always_include", [])),
                include_if_exists=list(context.get("include_if_exists", [])),
                max_context_tokens=context.get("max_context_tokens"),
            ),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> SkillDefinition:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        data.setdefault("name", path.stem)
        return cls.from_dict(data)


def load_skills(directory: Path) -> dict[str, SkillDefinition]:
    """Load every skill file in ``directory``. Broken files are logged and skipped."""
    skills: dict[str, SkillDefinition] = {}
    if not directory.is_dir():
        return skills
    for path in sorted(directory.iterdir()):
        if path.suffix not in SKILL_SUFFIXES:
            continue
        try:
            skill = SkillDefinition.from_yaml(path)
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping skill file %s: %s", path, e)
            continue
        skills[skill.name] = skill
    return skills


# ---------------------------------------------------------------------------
# Plan state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlanState:
    """What an executor needs to run a confirmed plan."""

    plan_id: str
    skill: str
    root: Path
    scope: ContextScope
    system_prompt: str
    model: str
    temperature: float
    max_output_tokens: int


class PlanStore:
    """Plans awaiting execution, keyed by plan id."""

    def __init__(self) -> None:
        self._plans: dict[str, PlanState] = {}

    def put(self, state: PlanState) -> None:
        self._plans[state.plan_id] = state

    def get(self, plan_id: str) -> PlanState:
        try:
            return self._plans[plan_id]
        except KeyError:
            raise PlanNotFoundError(plan_id) from None

    def discard(self, plan_id: str) -> None:
        self._plans.pop(plan_id, None)

    def __contains__(self, plan_id: object) -> bool:
        return plan_id in self._plans

    def __len__(self) -> int:
        return len(self._plans)


# ---------------------------------------------------------------------------
# Planners
# ---------------------------------------------------------------------------


class Planner(ABC):
    """Produces a Plan for a request. Failures raise PlanningError."""

    @abstractmethod
    async def plan(
        self,
        root: Path,
        skill: str,
        scope: ContextScope,
        instruction: str,
    ) -> Plan:
        pass


class SkillPlanner(Planner):
    """
    Plans from YAML skill definitions and project files.

    Context files are included whole while they fit the skill's token budget;
    the rest are reduced to their first paragraph. The estimate prices the
    assembled prompt plus the configured output allowance.
    """

    def __init__(
        self,
        skills: dict[str, SkillDefinition] | None = None,
        registry: ModelRegistry | None = None,
        config: DraftsmithConfig | None = None,
        store: PlanStore | None = None,
    ) -> None:
        self.config = config or DraftsmithConfig()
        if skills is None:
            skills = load_skills(self.config.skills_dir) if self.config.skills_dir else {}
        self.skills = skills
        if registry is None:
            registry = ModelRegistry(long_context_threshold=self.config.long_context_threshold)
            registry.load_defaults()
        self.registry = registry
        self.store = store or PlanStore()

    @classmethod
    def from_directory(cls, skills_dir: Path, **kwargs: Any) -> SkillPlanner:
        return cls(skills=load_skills(skills_dir), **kwargs)

    def get_skill(self, name: str) -> SkillDefinition:
        skill = self.skills.get(name)
        if skill is None:
            raise PlanningError(f"Skill not found: {name}")
        return skill

    async def plan(
        self,
        root: Path,
        skill: str,
        scope: ContextScope,
        instruction: str,
    ) -> Plan:
        definition = self.get_skill(skill)
        root = Path(root)
        model = definition.default_model or self.config.default_model

        context_files, context_block = self._assemble_context(definition, root, scope)
        system_prompt = self._render_prompt(definition, scope)
        if context_block:
            system_prompt = f"{system_prompt}\n\n{context_block}"

        total_tokens = estimate_tokens(system_prompt) + estimate_tokens(instruction)
        cost = self.registry.calculate_cost(model, total_tokens, self.config.max_output_tokens)

        plan_id = str(uuid.uuid4())
        self.store.put(
            PlanState(
                plan_id=plan_id,
                skill=definition.name,
                root=root,
                scope=scope,
                system_prompt=system_prompt,
                model=model,
                temperature=definition.temperature,
                max_output_tokens=self.config.max_output_tokens,
            )
        )
        logger.info("Planned %s with %s (%d tokens)", definition.name, model, total_tokens)

        return Plan(
            plan_id=plan_id,
            skills=(definition.name,),
            model=model,
            context_files=tuple(context_files),
            total_tokens_est=total_tokens,
            estimated_cost=f"~{format_cost(cost)}",
            approach=f"Using {definition.display_name} skill to process: {instruction}",
        )

    def _render_prompt(self, definition: SkillDefinition, scope: ContextScope) -> str:
        try:
            return definition.system_prompt.format_map(_KeepMissing(scope.as_vars()))
        except (ValueError, IndexError):
            return definition.system_prompt

    def _assemble_context(
        self, definition: SkillDefinition, root: Path, scope: ContextScope
    ) -> tuple[list[ContextFileInfo], str]:
        budget = definition.context.max_context_tokens or self.config.default_max_context_tokens
        variables = scope.as_vars()
        used = 0
        files: list[ContextFileInfo] = []
        sections: list[str] = []

        candidates = [(t, True) for t in definition.context.always_include]
        candidates += [(t, False) for t in definition.context.include_if_exists]
        for template, required in candidates:
            try:
                relative = template.format(**variables)
            except (KeyError, IndexError):
                logger.debug("Skipping context %s: scope does not provide its variables", template)
                continue
            path = root / relative
            if not path.is_file():
                if required:
                    logger.warning("Context file %s is missing", relative)
                continue

            text = path.read_text(encoding="utf-8")
            tokens = estimate_tokens(text)
            mode = ContextMode.FULL
            if used + tokens > budget:
                text = first_paragraph(text)
                tokens = estimate_tokens(text)
                mode = ContextMode.SUMMARY
            used += tokens
            files.append(ContextFileInfo(path=relative, mode=mode, tokens_est=tokens))
            sections.append(f"## {relative}\n\n{text.strip()}")

        return files, "\n\n".join(sections)


class _KeepMissing(dict):
    """format_map mapping that leaves unknown placeholders in place."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"

"""
draftsmith - turn generative-assistant replies into committed documents.

The package drives a plan -> confirm -> stream -> commit generation cycle
and recovers structured content from free-form model output: apply
directives, wrapped draft bodies, frontmatter headers and the markdown the
editor exchanges as a rich-text tree.

Example:
    from draftsmith import extract_directives, normalize_draft_body

    directives, prose = extract_directives(reply)
    body = normalize_draft_body(reply)
"""

from draftsmith.apply import apply_directive, replace_section
from draftsmith.config import DraftsmithConfig
from draftsmith.cost import CostTracker, ProjectCostStore
from draftsmith.directives import (
    extract_directives,
    has_directives,
    parse_directives,
    strip_directive_markup,
)
from draftsmith.draft_body import normalize_draft_body
from draftsmith.errors import (
    DirectiveError,
    DocumentNotFoundError,
    DocumentWriteError,
    DraftsmithError,
    ExecutionError,
    PlanningError,
    PlanNotFoundError,
)
from draftsmith.events import (
    PHASE_CHANGED,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    EventBus,
    PhaseChangeEvent,
    PlanStream,
    chunk_channel,
    done_channel,
    error_channel,
)
from draftsmith.executors import Executor, StreamingExecutor
from draftsmith.frontmatter import Document, parse_frontmatter, serialize_frontmatter
from draftsmith.generation import GenerationPhase, GenerationResult, GenerationSession
from draftsmith.model_registry import (
    CostBreakdown,
    ModelDefinition,
    ModelPricing,
    ModelRegistry,
    PricingTier,
    TokenUsage,
)
from draftsmith.models import (
    ApplyDirective,
    ContextFileInfo,
    ContextMode,
    ContextScope,
    DirectiveAction,
    GenerationRequest,
    Message,
    Plan,
    RetrievedContext,
)
from draftsmith.planning import Planner, PlanStore, SkillDefinition, SkillPlanner
from draftsmith.richtext import Mark, RichNode, markdown_to_tree, tree_to_markdown
from draftsmith.storage import DocumentStorage, FileStorage, next_versioned_name

__version__ = "0.1.0"

__all__ = [
    # Orchestration
    "GenerationSession",
    "GenerationPhase",
    "GenerationResult",
    "GenerationRequest",
    # Collaborators
    "Planner",
    "SkillPlanner",
    "SkillDefinition",
    "PlanStore",
    "Executor",
    "StreamingExecutor",
    "DocumentStorage",
    "FileStorage",
    # Events
    "EventBus",
    "PlanStream",
    "ChunkEvent",
    "DoneEvent",
    "ErrorEvent",
    "PhaseChangeEvent",
    "PHASE_CHANGED",
    "chunk_channel",
    "done_channel",
    "error_channel",
    # Parsing
    "extract_directives",
    "has_directives",
    "parse_directives",
    "strip_directive_markup",
    "normalize_draft_body",
    "parse_frontmatter",
    "serialize_frontmatter",
    "Document",
    "markdown_to_tree",
    "tree_to_markdown",
    "RichNode",
    "Mark",
    # Applying
    "apply_directive",
    "replace_section",
    "next_versioned_name",
    # Pricing
    "ModelRegistry",
    "ModelDefinition",
    "ModelPricing",
    "PricingTier",
    "TokenUsage",
    "CostBreakdown",
    "CostTracker",
    "ProjectCostStore",
    # Models
    "ApplyDirective",
    "DirectiveAction",
    "ContextScope",
    "ContextFileInfo",
    "ContextMode",
    "RetrievedContext",
    "Plan",
    "Message",
    # Config
    "DraftsmithConfig",
    # Errors
    "DraftsmithError",
    "PlanningError",
    "PlanNotFoundError",
    "ExecutionError",
    "DocumentNotFoundError",
    "DocumentWriteError",
    "DirectiveError",
]

"""
Model registry and lookup rules.

Static, read-only metadata about known Cursor models. The registry is
passed into the analyzers explicitly so tests and config files can
substitute their own.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional


class ModelCategory(Enum):
    """Cost tier of a model, by cost per million tokens."""
    COST_EFFICIENT = "cost_efficient"  # < $50/M
    SPECIALIZED = "specialized"        # < $500/M
    PREMIUM = "premium"


@dataclass(frozen=True)
class ModelInfo:
    """Known properties of a single model."""
    name: str
    display_name: str
    category: ModelCategory
    use_case: str
    typical_cost_per_million_tokens: Optional[float] = None
    is_reasoning_model: bool = False


@dataclass(frozen=True)
class ModelRegistry:
    """Read-only table of known models."""
    models: Mapping[str, ModelInfo] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only view over a private copy
        object.__setattr__(self, "models", MappingProxyType(dict(self.models)))

    def lookup(self, model_name: str) -> Optional[ModelInfo]:
        """Find a model by exact, case-insensitive, then substring match.

        The substring test runs both ways, so ``claude-4.5-sonnet-thinking``
        would match a ``claude-4.5-sonnet`` entry if it had no entry of its
        own.

        Args:
            model_name: Model name as it appears in the export

        Returns:
            ModelInfo for the model, or None if nothing matches
        """
        if model_name in self.models:
            return self.models[model_name]

        lowered = model_name.lower()
        for key, info in self.models.items():
            if key.lower() == lowered:
                return info

        for key, info in self.models.items():
            key_lowered = key.lower()
            if key_lowered in lowered or lowered in key_lowered:
                return info

        return None

    def is_reasoning_model(self, model_name: str) -> bool:
        """Check the registry first, then fall back to the "thinking" naming convention."""
        info = self.lookup(model_name)
        if info is not None:
            return info.is_reasoning_model
        return "thinking" in model_name.lower()

    def models_by_category(self, category: ModelCategory) -> List[ModelInfo]:
        return [info for info in self.models.values() if info.category == category]

    def with_models(self, extra: Mapping[str, ModelInfo]) -> "ModelRegistry":
        """Return a new registry with ``extra`` added on top of this one."""
        merged: Dict[str, ModelInfo] = dict(self.models)
        merged.update(extra)
        return ModelRegistry(merged)


_CATEGORY_RECOMMENDATIONS = {
    ModelCategory.COST_EFFICIENT: "Use for: General coding tasks, frequent use recommended",
    ModelCategory.SPECIALIZED: "Use for: Complex tasks requiring advanced reasoning",
    ModelCategory.PREMIUM: "Use sparingly: Only for the most complex problems",
}


def model_recommendation(
    registry: ModelRegistry,
    model_name: str,
    category: ModelCategory,
) -> str:
    """Get usage advice for a model.

    Known models get their registered use case; anything else falls back
    to advice for the category computed from actual usage.
    """
    info = registry.lookup(model_name)
    if info is not None and info.use_case:
        return f"Use for: {info.use_case}"
    return _CATEGORY_RECOMMENDATIONS[category]


# Fixed registry of known Cursor models (cursor.com/docs/models#model-pricing)
DEFAULT_REGISTRY = ModelRegistry({
    "grok-code-fast-1": ModelInfo(
        name="grok-code-fast-1",
        display_name="Grok Code Fast",
        category=ModelCategory.COST_EFFICIENT,
        use_case="Syntax checks, quick refactors, simple questions",
        typical_cost_per_million_tokens=47,
    ),
    "gemini-2.5-pro": ModelInfo(
        name="gemini-2.5-pro",
        display_name="Gemini 2.5 Pro",
        category=ModelCategory.COST_EFFICIENT,
        use_case="Code analysis, documentation, general coding tasks",
        typical_cost_per_million_tokens=112,
    ),
    "composer-1": ModelInfo(
        name="composer-1",
        display_name="Composer",
        category=ModelCategory.SPECIALIZED,
        use_case="Multi-file edits, complex refactoring",
        typical_cost_per_million_tokens=183,
    ),
    "claude-4.5-sonnet": ModelInfo(
        name="claude-4.5-sonnet",
        display_name="Claude 4.5 Sonnet",
        category=ModelCategory.SPECIALIZED,
        use_case="Complex features, architectural decisions, difficult problems",
        typical_cost_per_million_tokens=530,
    ),
    "claude-4.5-sonnet-thinking": ModelInfo(
        name="claude-4.5-sonnet-thinking",
        display_name="Claude 4.5 Sonnet Thinking",
        category=ModelCategory.PREMIUM,
        use_case="Architecture planning, critical design decisions only",
        typical_cost_per_million_tokens=776,
        is_reasoning_model=True,
    ),
    "claude-4-opus": ModelInfo(
        name="claude-4-opus",
        display_name="Claude 4 Opus",
        category=ModelCategory.PREMIUM,
        use_case="Most complex problems requiring highest quality reasoning",
        typical_cost_per_million_tokens=1500,
    ),
})

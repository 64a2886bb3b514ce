"""
Configuration loading.

Reads the optional YAML file that adds or overrides model registry
entries.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from cursor_cost_explorer.core.errors import ValidationError
from cursor_cost_explorer.core.registry import DEFAULT_REGISTRY, ModelCategory, ModelInfo, ModelRegistry

logger = logging.getLogger(__name__)

_ALLOWED_TOP_KEYS = {'models'}
_ALLOWED_MODEL_KEYS = {
    'display_name',
    'category',
    'use_case',
    'typical_cost_per_million_tokens',
    'is_reasoning_model',
}


@dataclass(frozen=True)
class AnalysisConfig:
    """User configuration for an analysis run."""
    models: Mapping[str, ModelInfo] = field(default_factory=dict)

    def build_registry(self, base: Optional[ModelRegistry] = None) -> ModelRegistry:
        """Layer the configured models over ``base`` (the built-in registry by default)."""
        base = base or DEFAULT_REGISTRY
        if not self.models:
            return base
        return base.with_models(self.models)


def load_analysis_config(path: str) -> AnalysisConfig:
    """Load and validate analysis configuration from a YAML file.

    Unknown keys are rejected so that a typo never silently falls back
    to defaults.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AnalysisConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValidationError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValidationError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValidationError("Configuration must be a dictionary")

    unknown_keys = set(raw_config.keys()) - _ALLOWED_TOP_KEYS
    if unknown_keys:
        raise ValidationError(f"Unknown configuration keys: {sorted(unknown_keys)}")

    models_data = raw_config.get('models') or {}
    if not isinstance(models_data, dict):
        raise ValidationError("'models' must be a dictionary")

    models = {}
    for model_name, model_data in models_data.items():
        if not isinstance(model_data, dict):
            raise ValidationError(f"Model '{model_name}' must be a dictionary")
        models[str(model_name)] = _parse_model(str(model_name), model_data)

    logger.info("Loaded %d model definitions from %s", len(models), path)
    return AnalysisConfig(models=models)


def _parse_model(name: str, data: Dict[str, Any]) -> ModelInfo:
    """Parse and validate one model entry.

    Args:
        name: Model name (the YAML key)
        data: Model configuration data

    Returns:
        Validated ModelInfo

    Raises:
        ValidationError: If the entry is invalid
    """
    path = f"models.{name}"
    unknown_keys = set(data.keys()) - _ALLOWED_MODEL_KEYS
    if unknown_keys:
        raise ValidationError(f"Unknown keys in {path}: {sorted(unknown_keys)}")

    if 'category' not in data:
        raise ValidationError(f"Missing required 'category' in {path}")
    category_str = data['category']
    if not isinstance(category_str, str):
        raise ValidationError(f"'category' in {path} must be a string")
    try:
        category = ModelCategory(category_str.lower().replace('-', '_'))
    except ValueError:
        valid = [c.value for c in ModelCategory]
        raise ValidationError(f"'category' in {path} must be one of: {valid}")

    if 'use_case' not in data:
        raise ValidationError(f"Missing required 'use_case' in {path}")
    use_case = data['use_case']
    if not isinstance(use_case, str) or not use_case.strip():
        raise ValidationError(f"'use_case' in {path} must be a non-empty string")

    display_name = data.get('display_name', name)
    if not isinstance(display_name, str):
        raise ValidationError(f"'display_name' in {path} must be a string")

    typical_cost = data.get('typical_cost_per_million_tokens')
    if typical_cost is not None:
        if isinstance(typical_cost, bool) or not isinstance(typical_cost, (int, float)) or typical_cost < 0:
            raise ValidationError(f"'typical_cost_per_million_tokens' in {path} must be >= 0")
        typical_cost = float(typical_cost)

    is_reasoning = data.get('is_reasoning_model', False)
    if not isinstance(is_reasoning, bool):
        raise ValidationError(f"'is_reasoning_model' in {path} must be true or false")

    return ModelInfo(
        name=name,
        display_name=display_name,
        category=category,
        use_case=use_case.strip(),
        typical_cost_per_million_tokens=typical_cost,
        is_reasoning_model=is_reasoning,
    )

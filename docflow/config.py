"""
Configuration Module

Loads the YAML configuration: risk model weights, rule thresholds, audit
retention and extra document type files. A user file is merged over the
shipped defaults, so it only needs the keys it changes.

Values are checked with pydantic models before they reach the pipeline, so a
bad threshold fails at load time instead of in the middle of a decision.
Amount settings may be written the way people write money ("10,000").
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .decision.decision_engine import RuleThresholds
from .doctypes.registry import DocumentTypeRegistry
from .exceptions import ValidationError
from .scoring.risk_scorer import RiskModel

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'default_config.yaml'


# =============================================================================
# SCHEMA
# =============================================================================

def _plain_number(value: Any) -> Any:
    """Accept "10,000" and "$5,000" for numeric settings."""
    if isinstance(value, str):
        cleaned = value.strip().replace(',', '').replace('$', '').replace('_', '')
        return cleaned or value
    return value


class KeywordTierSettings(BaseModel):
    """One keyword tier of the risk model."""
    keywords: List[str] = []
    points_per_keyword: int = 1
    cap: int = 0

    @field_validator('keywords', mode='before')
    @classmethod
    def keywords_as_text(cls, v):
        if v is None:
            return []
        return [str(k) for k in v]

    @field_validator('points_per_keyword', 'cap')
    @classmethod
    def not_negative(cls, v):
        if v < 0:
            raise ValueError('must not be negative')
        return v


class AmountTierSettings(BaseModel):
    """Points for amounts strictly above a threshold."""
    above: float
    points: int

    @field_validator('above', mode='before')
    @classmethod
    def plain_number(cls, v):
        return _plain_number(v)


class RiskModelSettings(BaseModel):
    """The ``risk_model`` section."""
    version: str = '1.0'
    min_score: int = 0
    max_score: int = 10
    keyword_tiers: Dict[str, KeywordTierSettings] = {}
    amount_fields: List[str] = ['Amount', 'Value']
    amount_tiers: List[AmountTierSettings] = []
    sparsity_penalties: List[int] = []

    @field_validator('version', mode='before')
    @classmethod
    def version_as_text(cls, v):
        # version: 2.0 unquoted is a YAML float
        return str(v)

    @field_validator('keyword_tiers', mode='before')
    @classmethod
    def tiers_or_empty(cls, v):
        return v or {}

    @field_validator('amount_tiers', 'sparsity_penalties', 'amount_fields', mode='before')
    @classmethod
    def list_or_empty(cls, v):
        return v or []

    @model_validator(mode='after')
    def score_range(self):
        if not self.keyword_tiers:
            raise ValueError('keyword_tiers is empty')
        if self.min_score > self.max_score:
            raise ValueError('min_score exceeds max_score')
        return self


class RuleSettings(BaseModel):
    """The ``rules`` section: thresholds of the default rules."""
    high_risk_score: int = 7
    large_amount: float = 10000
    moderate_risk_min: int = 4
    moderate_amount: float = 5000
    auto_approve_max_risk: int = 3
    auto_approve_max_amount: float = 5000
    small_amount: float = 1000
    min_fields: int = 2
    min_fields_small_amount: int = 1

    @field_validator(
        'large_amount', 'moderate_amount', 'auto_approve_max_amount', 'small_amount',
        mode='before',
    )
    @classmethod
    def plain_number(cls, v):
        return _plain_number(v)

    @field_validator('*')
    @classmethod
    def not_negative(cls, v):
        if v < 0:
            raise ValueError('must not be negative')
        return v


class AuditSettings(BaseModel):
    """The ``audit`` section."""
    max_entries: int = 1000

    @field_validator('max_entries')
    @classmethod
    def positive(cls, v):
        if v < 1:
            raise ValueError(f'must be positive, got {v}')
        return v


class DocflowSettings(BaseModel):
    """Schema of the merged configuration file."""
    risk_model: RiskModelSettings = Field(default={}, validate_default=True)
    rules: RuleSettings = RuleSettings()
    audit: AuditSettings = AuditSettings()
    document_types: List[str] = []

    @field_validator('risk_model', 'rules', 'audit', mode='before')
    @classmethod
    def section_or_empty(cls, v):
        return {} if v is None else v

    @field_validator('document_types', mode='before')
    @classmethod
    def paths_as_text(cls, v):
        return [str(p) for p in (v or [])]


def _format_errors(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = '.'.join(str(p) for p in item['loc'])
        parts.append(f"{location}: {item['msg']}" if location else item['msg'])
    return '; '.join(parts)


# =============================================================================
# CONFIG
# =============================================================================

@dataclass
class DocflowConfig:
    """Resolved pipeline configuration."""

    risk_model: RiskModel = field(default_factory=RiskModel)
    rules: RuleThresholds = field(default_factory=RuleThresholds)
    audit_max_entries: int = 1000
    document_type_files: List[str] = field(default_factory=list)
    source_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source_path: Optional[str] = None) -> 'DocflowConfig':
        """
        Build a config from a merged mapping.

        Raises:
            ValidationError: On missing sections or bad values
        """
        try:
            settings = DocflowSettings.model_validate(data)
        except PydanticValidationError as e:
            message = _format_errors(e)
            logger.error(f"Invalid configuration: {message}")
            raise ValidationError(
                f"Invalid configuration: {message}",
                details={'path': source_path},
            ) from e

        return cls(
            risk_model=RiskModel.from_dict(settings.risk_model.model_dump()),
            rules=RuleThresholds.from_dict(settings.rules.model_dump()),
            audit_max_entries=settings.audit.max_entries,
            document_type_files=list(settings.document_types),
            source_path=source_path,
        )
    def load_document_types(self, registry: DocumentTypeRegistry) -> int:
        """
        Register the configured document type files.

        Returns:
            Number of types loaded
        """
        loaded = 0
        for type_path in self.document_type_files:
            path = Path(type_path)
            if self.source_path and not path.is_absolute():
                path = Path(self.source_path).parent / path

            if path.is_dir():
                loaded += registry.load_from_directory(str(path))
            else:
                loaded += registry.load(str(path))

        if loaded:
            logger.info(f"Loaded {loaded} document types from configuration")
        return loaded


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge mappings; non-mapping values in ``override`` replace."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load config: {e}")
        raise ValidationError(
            f"Cannot read configuration {path}: {e}",
            details={'path': str(path)},
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(
            f"Configuration {path} must be a mapping",
            details={'path': str(path)},
        )
    return data


def load_config(path: Optional[Union[str, Path]] = None) -> DocflowConfig:
    """
    Load configuration.

    Args:
        path: Optional user YAML file merged over the defaults

    Returns:
        DocflowConfig

    Raises:
        ValidationError: Unreadable file or invalid values
    """
    data = _read_yaml(DEFAULT_CONFIG_PATH)

    if path is not None:
        path = Path(path)
        logger.info(f"Loading configuration from: {path}")
        data = merge_config(data, _read_yaml(path))

    config = DocflowConfig.from_dict(data, source_path=str(path) if path else None)
    logger.debug(
        f"Risk model {config.risk_model.version}, "
        f"audit cap {config.audit_max_entries}"
    )
    return config

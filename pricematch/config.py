"""
Engine configuration.

Every option is explicit: defaults live here, overrides come from a JSON file
or a dict handed in by the caller. Nothing is read from the environment.
"""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .errors import InvalidInput
from .normalize import STOP_WORDS

DEFAULT_SIGNIFICANT_KEYWORDS = ("pro", "max", "plus", "ultra", "mini")


@dataclass(frozen=True)
class ScoringWeights:
    """
    Scoring weights. The defaults were chosen empirically and have no
    calibration dataset behind them; see scripts/calibrate_threshold.py.
    """

    token_floor: float = 0.5
    token_span: float = 0.45
    brand_bonus: float = 0.10
    keyword_bonus: float = 0.05
    image_bonus: float = 0.05
    image_cutoff: int = 10
    # Only an identifier match may reach 1.0
    max_inferred_score: float = 0.99


@dataclass(frozen=True)
class MatchConfig:
    threshold: float = 0.4
    per_source_limit: int = 5
    aggregation_deadline: float = 15.0
    significant_keywords: Tuple[str, ...] = DEFAULT_SIGNIFICANT_KEYWORDS
    stop_words: FrozenSet[str] = STOP_WORDS
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    known_sources: Optional[Tuple[str, ...]] = None
    query_max_terms: int = 8

    def with_threshold(self, threshold: float) -> "MatchConfig":
        config = replace(self, threshold=threshold)
        errors = validate_config(config)
        if errors:
            raise InvalidInput(errors)
        return config


def validate_config(config: MatchConfig) -> List[str]:
    errors: List[str] = []
    if not 0.0 <= config.threshold <= 1.0:
        errors.append("threshold must be between 0 and 1")
    if config.per_source_limit < 1:
        errors.append("per_source_limit must be at least 1")
    if config.aggregation_deadline <= 0:
        errors.append("aggregation_deadline must be positive")
    if config.query_max_terms < 1:
        errors.append("query_max_terms must be at least 1")

    w = config.weights
    if w.token_floor < 0 or w.token_span < 0 or w.token_floor + w.token_span > 1.0:
        errors.append("token_floor and token_span must be non-negative and sum to at most 1")
    for name in ("brand_bonus", "keyword_bonus", "image_bonus"):
        if getattr(w, name) < 0:
            errors.append(f"{name} must be non-negative")
    if not 0 <= w.image_cutoff <= 64:
        errors.append("image_cutoff must be between 0 and 64")
    if not 0.0 < w.max_inferred_score < 1.0:
        errors.append("max_inferred_score must be strictly between 0 and 1")
    return errors


def _string_list(key: str, value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise InvalidInput([f"{key} must be a list of strings"])
    return list(value)


def config_from_dict(data: Dict[str, Any]) -> MatchConfig:
    if not isinstance(data, dict):
        raise InvalidInput(["Config must be a JSON object"])
    known = {f for f in MatchConfig.__dataclass_fields__}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidInput([f"Unknown config option: {k}" for k in unknown])

    kwargs: Dict[str, Any] = {}
    for k, v in data.items():
        if k == "weights":
            if not isinstance(v, dict):
                raise InvalidInput(["weights must be an object"])
            wknown = set(ScoringWeights.__dataclass_fields__)
            bad = sorted(set(v) - wknown)
            if bad:
                raise InvalidInput([f"Unknown weight: {k}" for k in bad])
            kwargs[k] = ScoringWeights(**v)
        elif k == "significant_keywords":
            kwargs[k] = tuple(kw.lower() for kw in _string_list(k, v))
        elif k == "stop_words":
            kwargs[k] = frozenset(w.lower() for w in _string_list(k, v))
        elif k == "known_sources":
            kwargs[k] = tuple(_string_list(k, v)) if v is not None else None
        else:
            kwargs[k] = v

    try:
        config = MatchConfig(**kwargs)
        errors = validate_config(config)
    except TypeError as e:
        raise InvalidInput([f"Invalid config: {e}"])
    if errors:
        raise InvalidInput(errors)
    return config


def load_config(path: Path) -> MatchConfig:
    """Load a MatchConfig from a JSON file; missing keys keep their defaults."""
    if not path.exists():
        raise InvalidInput([f"Config file not found: {path}"])
    with path.open("r", encoding="utf-8") as f:
        content = f.read().strip()
    if not content:
        return MatchConfig()
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidInput([f"Config file is not valid JSON: {e}"])
    if not isinstance(data, dict):
        raise InvalidInput(["Config file must contain a JSON object"])
    return config_from_dict(data)

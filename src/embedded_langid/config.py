from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

DEFAULT_PROBABILITY_THRESHOLD = 0.50
DEFAULT_LANGUAGE = ""

FEATURE_KINDS = ("hashed-chargrams", "relevant-script")


@dataclass(slots=True)
class ClassifierConfig:
    """Mutable per-classifier decision settings."""

    probability_threshold: float = DEFAULT_PROBABILITY_THRESHOLD
    default_language: str = DEFAULT_LANGUAGE


@dataclass(frozen=True, slots=True)
class FeatureExtractionOptions:
    """Options for character n-gram hashing of tokens."""

    num_buckets: int = 1000
    chargram_orders: tuple[int, ...] = (1, 2, 3)
    max_word_length: int = 20
    remap_digits: bool = False
    unicode_aware_features: bool = True
    extract_case_feature: bool = False
    extract_selection_mask_feature: bool = False
    regexp_features: tuple[str, ...] = ()

    @property
    def dense_dim(self) -> int:
        return (
            int(self.extract_case_feature)
            + int(self.extract_selection_mask_feature)
            + len(self.regexp_features)
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "FeatureExtractionOptions":
        """Build options from a mapping, ignoring unknown keys."""
        if data is None:
            return cls()
        allowed = {item.name for item in fields(cls)}
        kwargs = {key: data[key] for key in data if key in allowed}
        for key in ("num_buckets", "max_word_length"):
            if key in kwargs:
                kwargs[key] = int(kwargs[key])
        if "chargram_orders" in kwargs:
            kwargs["chargram_orders"] = tuple(int(v) for v in kwargs["chargram_orders"])
        if "regexp_features" in kwargs:
            kwargs["regexp_features"] = tuple(str(v) for v in kwargs["regexp_features"])
        options = cls(**kwargs)
        if options.num_buckets <= 0:
            raise ValueError("num_buckets must be positive.")
        if options.max_word_length < 0:
            raise ValueError("max_word_length must not be negative.")
        if any(order <= 0 for order in options.chargram_orders):
            raise ValueError("chargram_orders must contain positive integers.")
        return options

    def to_dict(self) -> dict[str, Any]:
        data = dict(asdict(self))
        data["chargram_orders"] = list(self.chargram_orders)
        data["regexp_features"] = list(self.regexp_features)
        return data


@dataclass(frozen=True, slots=True)
class FeatureSpec:
    """One sparse-feature domain; domain i feeds embedding table i."""

    name: str
    kind: str = "hashed-chargrams"
    options: FeatureExtractionOptions = field(default_factory=FeatureExtractionOptions)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FeatureSpec":
        if not isinstance(data, Mapping):
            raise ValueError("Feature spec must be a mapping.")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError("Feature spec requires a non-empty name.")
        kind = str(data.get("kind", "hashed-chargrams"))
        if kind not in FEATURE_KINDS:
            raise ValueError(f"Unknown feature kind '{kind}'.")
        options = FeatureExtractionOptions.from_mapping(data.get("options"))
        return cls(name=name, kind=kind, options=options)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "kind": self.kind, "options": self.options.to_dict()}


@dataclass(slots=True)
class LangIdSettings:
    """Settings used by the CLI and by callers that load from YAML."""

    model_path: str | None = None
    probability_threshold: float | None = None
    default_language: str = DEFAULT_LANGUAGE
    log_level: str = "WARNING"

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable dictionary representation of the settings."""
        return dict(asdict(self))


def config_from_dict(data: Mapping[str, Any] | None) -> LangIdSettings:
    """Build LangIdSettings from a dictionary-like input."""
    if data is None:
        return LangIdSettings()
    allowed = {item.name for item in fields(LangIdSettings)}
    return LangIdSettings(**{key: data[key] for key in data if key in allowed})


def config_from_yaml(path: str | Path) -> LangIdSettings:
    """Load settings from a YAML file."""
    contents = Path(path).read_text(encoding="utf-8")
    parsed = yaml.safe_load(contents) or {}
    if not isinstance(parsed, MutableMapping):
        raise ValueError("Configuration YAML must define a mapping.")
    return config_from_dict(parsed)


def load_config(path: str | Path | None = None) -> LangIdSettings:
    """Load settings from YAML when provided, otherwise return defaults."""
    if path is None:
        return LangIdSettings()
    return config_from_yaml(path)

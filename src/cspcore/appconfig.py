from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Optional, Tuple

from .conferences import Conference

DEFAULT_FEW_SHOT = """Example of a good review tone:
"While the proposed method for graph neural networks is theoretically interesting, the experimental validation lacks comparison with strong baselines like GraphSAGE or GAT on large-scale datasets. The novelty is marginal as it primarily combines existing attention mechanisms."
"""


@dataclass(frozen=True)
class UserProfile:
    """Reviewer persona injected into every prompt."""

    name: str = "Reviewer"
    role: str = "Senior Area Chair"
    affiliation: str = "Top Tier University"
    expertise: str = "Machine Learning, Deep Learning, AI"


@dataclass(frozen=True)
class ModelConfig:
    """Model selection and sampling parameters."""

    model_name: str = "gpt-4o"
    temperature: float = 0.4
    top_k: int = 40
    top_p: float = 0.95
    api_key: Optional[str] = None
    base_url: Optional[str] = None


@dataclass(frozen=True)
class AppConfig:
    user_profile: UserProfile = field(default_factory=UserProfile)
    few_shot_examples: str = DEFAULT_FEW_SHOT
    custom_conferences: Tuple[Conference, ...] = ()
    model_config: ModelConfig = field(default_factory=ModelConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_profile": asdict(self.user_profile),
            "few_shot_examples": self.few_shot_examples,
            "custom_conferences": [c.to_dict() for c in self.custom_conferences],
            "model_config": asdict(self.model_config),
        }


def default_config() -> AppConfig:
    return AppConfig()


def _known_fields(cls, data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def merge_snapshot(
    snapshot: Optional[Dict[str, Any]], defaults: Optional[AppConfig] = None
) -> AppConfig:
    """Merge a persisted config snapshot over ``defaults`` field by field.

    Nested persona and model settings are merged key by key, so a snapshot
    written before a field existed still gets that field's default.
    """
    base = defaults or default_config()
    if not snapshot:
        return base

    profile = replace(base.user_profile, **_known_fields(UserProfile, snapshot.get("user_profile")))
    model = replace(base.model_config, **_known_fields(ModelConfig, snapshot.get("model_config")))

    custom = base.custom_conferences
    if isinstance(snapshot.get("custom_conferences"), list):
        custom = tuple(Conference.from_dict(c) for c in snapshot["custom_conferences"])

    return AppConfig(
        user_profile=profile,
        few_shot_examples=str(snapshot.get("few_shot_examples", base.few_shot_examples)),
        custom_conferences=custom,
        model_config=model,
    )

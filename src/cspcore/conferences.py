from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import ConferenceNotFoundError

DEFAULT_RULES = "Review strictly based on technical content."


@dataclass(frozen=True)
class Conference:
    id: str
    name: str
    short_name: str
    description: str
    focus_area: str
    custom_rules: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conference":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            short_name=str(data.get("short_name") or data.get("name", data["id"])),
            description=str(data.get("description", "")),
            focus_area=str(data.get("focus_area", "")),
            custom_rules=data.get("custom_rules"),
        )


BUILTIN_CONFERENCES: Tuple[Conference, ...] = (
    Conference(
        id="neurips",
        name="NeurIPS",
        short_name="NeurIPS",
        description="Neural Information Processing Systems",
        focus_area="Machine Learning, Computational Neuroscience, Deep Learning theory.",
    ),
    Conference(
        id="iclr",
        name="ICLR",
        short_name="ICLR",
        description="International Conference on Learning Representations",
        focus_area="Deep Learning, Representation Learning, Generative Models.",
    ),
    Conference(
        id="icml",
        name="ICML",
        short_name="ICML",
        description="International Conference on Machine Learning",
        focus_area="General Machine Learning, Optimization, Statistics.",
    ),
    Conference(
        id="kdd",
        name="KDD",
        short_name="KDD",
        description="ACM SIGKDD Conference on Knowledge Discovery and Data Mining",
        focus_area="Data Mining, Applied Data Science, Scalable Algorithms.",
    ),
    Conference(
        id="acl",
        name="ACL",
        short_name="ACL",
        description="Association for Computational Linguistics",
        focus_area="NLP, Computational Linguistics, Language Models.",
    ),
    Conference(
        id="cvpr",
        name="CVPR",
        short_name="CVPR",
        description="Conference on Computer Vision and Pattern Recognition",
        focus_area="Computer Vision, Image Processing.",
    ),
)


def all_conferences(custom: Iterable[Conference] = ()) -> List[Conference]:
    """Built-in venues followed by user-defined ones, without de-duplication."""
    return list(BUILTIN_CONFERENCES) + list(custom)


def find_conference(conference_id: str, custom: Iterable[Conference] = ()) -> Conference:
    for conf in all_conferences(custom):
        if conf.id == conference_id:
            return conf
    raise ConferenceNotFoundError(f"Unknown conference: {conference_id}")


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def make_custom_conference(name: str) -> Conference:
    name = name.strip()
    if not name:
        raise ValueError("Conference name must not be empty")
    return Conference(
        id=slugify(name),
        name=name,
        short_name=name,
        description="Custom Conference",
        focus_area="General Computer Science",
    )


def screening_rules(conference: Conference, custom: Iterable[Conference] = ()) -> str:
    """Rules text for the desk-reject prompt.

    A user-defined entry sharing the conference id takes precedence, so rules
    attached to a shadowing custom entry still apply.
    """
    for conf in custom:
        if conf.id == conference.id and conf.custom_rules:
            return conf.custom_rules
    return conference.custom_rules or DEFAULT_RULES

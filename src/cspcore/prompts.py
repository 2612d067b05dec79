from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .appconfig import AppConfig, UserProfile
from .conferences import Conference, screening_rules
from .types import ChatMessage, MODEL_ROLE, ReviewResult

SCREEN_CHAR_LIMIT = 10_000
REVIEW_CHAR_LIMIT = 30_000

REVIEW_SECTIONS = (
    "Desk Rejection Assessment (Briefly confirm Paper Length, Topic Compatibility, "
    "Minimum Quality. IGNORE Anonymity/Double-blind checks).",
    "Paper Summary",
    "Paper Strengths (Detailed discussion)",
    "Paper Weaknesses (Detailed discussion)",
    "Potentially Missing Related Work",
    "Questions and Suggestions for Rebuttal",
    "Ratings (1-10 Scale for Relevance, Novelty, Technical Quality, Presentation, "
    "Reproducibility, Confidence)",
    "Ethics Review (Flag and Description)",
    "GenAI Content Analysis (Assess if the text appears to be LLM generated)",
)


@dataclass
class PromptBundle:
    messages: List[Dict[str, str]]


def build_persona_line(profile: UserProfile) -> str:
    return (
        f"You are acting as {profile.name}, a {profile.role} at {profile.affiliation}.\n"
        f"Your expertise includes: {profile.expertise}."
    )


def build_screen_prompt(
    paper_text: str, conference: Conference, config: AppConfig
) -> PromptBundle:
    rules = screening_rules(conference, config.custom_conferences)
    instructions = (
        f"{build_persona_line(config.user_profile)}\n\n"
        f"You are evaluating a submission for {conference.name} ({conference.short_name}).\n"
        'Your task is to perform a strict "Desk Reject" check.\n\n'
        f"Conference Focus Area: {conference.focus_area}\n\n"
        f"Custom Rules/Guidelines:\n{rules}\n\n"
        "Criteria for Desk Reject:\n"
        "1. Significantly out of scope for the conference.\n"
        "2. Text is gibberish or too short to be a paper.\n\n"
        "IMPORTANT: Do NOT check for double-blind violations. Author names and "
        "affiliations are ALLOWED in this review process. Do NOT reject based on "
        "anonymity violations.\n\n"
        "Analyze the paper text provided below."
    )
    paper = (
        "--- BEGIN PAPER TEXT ---\n"
        f"{paper_text[:SCREEN_CHAR_LIMIT]}\n"
        "--- END PAPER TEXT ---"
    )
    return PromptBundle(
        messages=[
            {"role": "user", "content": instructions},
            {"role": "user", "content": paper},
        ]
    )


def build_review_prompt(
    paper_text: str, conference: Conference, config: AppConfig
) -> PromptBundle:
    sections = "\n".join(f"{i}. {s}" for i, s in enumerate(REVIEW_SECTIONS, start=1))
    instructions = (
        f"{build_persona_line(config.user_profile)}\n\n"
        f"Conduct a full technical review of the paper below for {conference.name}.\n\n"
        "Reference Style Guide & Few-Shot Examples (Use this tone/style):\n"
        f"{config.few_shot_examples}\n\n"
        "Structure your review EXACTLY with the following sections:\n"
        f"{sections}\n\n"
        "Provide a final decision (Accept, Weak Accept, Weak Reject, Reject)."
    )
    paper = f"--- PAPER CONTENT ---\n{paper_text[:REVIEW_CHAR_LIMIT]}"
    return PromptBundle(
        messages=[
            {"role": "user", "content": instructions},
            {"role": "user", "content": paper},
        ]
    )


def build_rebuttal_instruction(
    profile: UserProfile,
    paper_title: str,
    initial_review: Optional[ReviewResult],
    conference_label: str,
) -> str:
    decision = initial_review.final_decision if initial_review else None
    weaknesses = initial_review.weaknesses if initial_review else None
    return (
        f"You are acting as {profile.name}, a {profile.role}.\n"
        f'You have reviewed the paper "{paper_title}" for {conference_label} '
        f'and gave a decision of "{decision or "No decision"}".\n\n'
        f"Your main criticisms were:\n{weaknesses or 'None recorded.'}\n\n"
        "The author is engaging in a rebuttal. Respond to their arguments.\n"
        "Defend your position if they don't provide evidence, but acknowledge valid points.\n"
        "Keep responses professional, academic, and concise."
    )


def build_rebuttal_prompt(
    history: Sequence[ChatMessage],
    paper_title: str,
    initial_review: Optional[ReviewResult],
    conference_label: str,
    config: AppConfig,
) -> PromptBundle:
    """System instruction, then every prior turn, then the newest turn last."""
    if not history:
        raise ValueError("Rebuttal history must contain at least one message")
    messages: List[Dict[str, str]] = [
        {
            "role": "system",
            "content": build_rebuttal_instruction(
                config.user_profile, paper_title, initial_review, conference_label
            ),
        }
    ]
    messages.extend(_chat_turns(history[:-1]))
    messages.append({"role": "user", "content": history[-1].text})
    return PromptBundle(messages=messages)


def _chat_turns(history: Iterable[ChatMessage]) -> List[Dict[str, str]]:
    return [
        {"role": "assistant" if m.role == MODEL_ROLE else "user", "content": m.text}
        for m in history
    ]

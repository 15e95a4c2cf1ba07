"""Helpers to construct the coaching prompt for the feedback LLM.

Audio and video recordings share one prompt skeleton: persona, rules, the
tool vocabulary and the JSON output contract. The variants only differ in the
observations they present and in the improvement rule.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Final

from app.services.face_detection import VisualSignal
from app.services.media import MediaKind

TOOL_VOCABULARY: Final[tuple[str, ...]] = (
    "Word Stretching",
    "Over-Articulation",
    "Hammer Tool",
    "Hammer-Link Tool",
    "Hand Movements",
    "Short Phrasing",
    "Smiling",
    "Soft Landing",
)

_PERSONA = (
    "You are a friendly, encouraging, and supportive speech coach. "
    "Your goal is to help the user build confidence."
)

# Observation sentences handed to the model for each visual outcome.
VISUAL_OBSERVATIONS: Final[dict[VisualSignal, str]] = {
    VisualSignal.TENSION_DETECTED: (
        "Detected some facial movements during speech that could indicate tension. "
        "Focusing on keeping the face relaxed could be beneficial."
    ),
    VisualSignal.NO_SIGNAL: (
        "No significant facial tension or unusual movements were detected."
    ),
}

_OUTPUT_CONTRACT = (
    "Format your entire response as a single, valid JSON object with NO surrounding text.\n"
    'The JSON object must have exactly two keys: "textFeedback" (a string) and '
    '"toolSuggestions" (an array of tool names taken verbatim from the list above).'
)


@dataclass(frozen=True)
class PromptContext:
    kind: MediaKind
    transcript: str
    visual_signal: VisualSignal | None = None


@dataclass(frozen=True)
class PromptBundle:
    prompt: str
    kind: MediaKind


def _observations(context: PromptContext) -> list[str]:
    if context.kind is MediaKind.VIDEO:
        signal = context.visual_signal or VisualSignal.NO_SIGNAL
        return [
            "I have analyzed a user's practice video and have the following information:",
            f'- AUDIO TRANSCRIPT: "{context.transcript}"',
            f'- VISUAL ANALYSIS: "{VISUAL_OBSERVATIONS[signal]}"',
            "Based on this information, provide a single, unified piece of feedback.",
        ]
    return [
        "Please analyze the following transcript of the user's speech.",
        f'TRANSCRIPT: "{context.transcript}"',
        "Please provide feedback based on this transcript.",
    ]


def _rules(kind: MediaKind) -> list[str]:
    if kind is MediaKind.VIDEO:
        improvement = (
            "Gently point out one or two specific areas for improvement, combining insights "
            "from both their speech and their physical presence. Frame these as opportunities "
            "for growth, not harsh criticisms."
        )
    else:
        improvement = (
            "Gently point out one or two specific areas for improvement, like filler words "
            "or repetitions. Frame these constructively."
        )
    return [
        'Address the user directly using "you" and "your".',
        "Start with something positive and encouraging you noticed about their practice.",
        improvement,
        "Recommend a few helpful tools from this list: "
        f"{json.dumps(list(TOOL_VOCABULARY))}. Only recommend tools from the list.",
    ]


def build_feedback_prompt(context: PromptContext) -> PromptBundle:
    """Render the prompt for either recording kind."""

    if context.kind is MediaKind.AUDIO and context.visual_signal is not None:
        raise ValueError("Audio prompts do not carry a visual signal.")

    lines = [_PERSONA, *_observations(context), "Follow these rules:"]
    lines.extend(f"{idx}. {rule}" for idx, rule in enumerate(_rules(context.kind), start=1))
    lines.append(_OUTPUT_CONTRACT)
    return PromptBundle(prompt="\n".join(lines), kind=context.kind)


__all__ = [
    "TOOL_VOCABULARY",
    "VISUAL_OBSERVATIONS",
    "PromptBundle",
    "PromptContext",
    "build_feedback_prompt",
]

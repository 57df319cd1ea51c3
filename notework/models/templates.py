"""Analysis templates and question prompt presets."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AnalysisTemplate:
    id: str
    name: str
    prompt: str
    icon: str


@dataclass
class PromptPreset:
    id: str
    name: str
    prompt: str
    category: str


ANALYSIS_TEMPLATES: list[AnalysisTemplate] = [
    AnalysisTemplate(
        id="keypoints",
        name="Key Points",
        prompt=(
            "Organize the key points of the following content systematically. "
            "Structure the main concepts, core arguments and important details."
        ),
        icon="🎯",
    ),
    AnalysisTemplate(
        id="deep_research",
        name="Deep Research",
        prompt=(
            "Analyze the following content in depth. Explain each concept and "
            "topic in detail, including background knowledge, context, meaning "
            "and real-world applications, at the level of an expert analysis."
        ),
        icon="🔬",
    ),
    AnalysisTemplate(
        id="related_topics",
        name="Related Topics",
        prompt=(
            "Extract topics related to the following content: directly related "
            "concepts, topics worth studying next, adjacent fields, and questions "
            "worth exploring further."
        ),
        icon="🔗",
    ),
]


DEFAULT_PROMPT_PRESETS: list[PromptPreset] = [
    PromptPreset("explain", "Explain simply", "Explain the following so that a beginner can understand it.", "Basic"),
    PromptPreset("example", "Ask for examples", "Give concrete examples of this concept.", "Basic"),
    PromptPreset("compare", "Pros and cons", "Compare the strengths and weaknesses of the following.", "Analysis"),
    PromptPreset("practical", "Practical use", "Explain how this can be applied in practice.", "Usage"),
    PromptPreset(
        "critique",
        "Critical review",
        "Analyze this critically. Point out potential problems and limitations.",
        "Analysis",
    ),
]


def get_template(template_id: str) -> AnalysisTemplate | None:
    return next((t for t in ANALYSIS_TEMPLATES if t.id == template_id), None)

# /llmrouter/workflows/parser.py

"""
Natural-language flow parsing and step prompt construction.

A flow description such as "First summarize this, then list 3 facts" becomes
an ordered list of FlowStep objects. The splitting is a heuristic:

1. Split on sequencing keywords ("first", "then", "after that", ...).
2. If that yields one segment or fewer, split on commas, semicolons and periods.
3. Every step after the first consumes the previous step's output.

All functions are pure.
"""

import re
from typing import List, Optional

from llmrouter.models.flow import FlowStep, ParsedFlow

# Keywords that indicate sequential steps
STEP_KEYWORDS = (
    "first",
    "then",
    "next",
    "after that",
    "finally",
    "lastly",
    "subsequently",
    "following that",
    "and then",
)

PUNCTUATION_SPLIT = re.compile(r"[,;.]")

# An instruction that points at earlier output ("summarize this", "translate the text")
REFERENCES_OUTPUT = re.compile(r"\b(this|that|it|the (result|output|response|text|content))\b", re.IGNORECASE)


def _split_on_keywords(text: str) -> List[str]:
    segments: List[str] = []
    current: List[str] = []
    words = text.split()

    i = 0
    while i < len(words):
        word = words[i].lower()
        next_word = words[i + 1].lower() if i < len(words) - 1 else ""

        if f"{word} {next_word}" in STEP_KEYWORDS:
            if current:
                segments.append(" ".join(current))
            current = []
            i += 2
            continue

        if word in STEP_KEYWORDS:
            if current:
                segments.append(" ".join(current))
            current = []
        else:
            current.append(words[i])
        i += 1

    if current:
        segments.append(" ".join(current))
    return segments


def parse_flow_description(description: Optional[str]) -> ParsedFlow:
    """Turn free text into an ordered ParsedFlow. Blank input yields zero steps."""
    if not description or not description.strip():
        return ParsedFlow(steps=(), raw_description=description or "")

    normalized = description.strip()
    segments = _split_on_keywords(normalized)

    if len(segments) <= 1:
        segments = [s for s in PUNCTUATION_SPLIT.split(normalized) if s.strip()]

    if not segments:
        segments = [normalized]

    instructions = [s.strip() for s in segments if s.strip()]
    steps = tuple(
        FlowStep(order=index + 1, instruction=instruction, uses_previous_output=index > 0)
        for index, instruction in enumerate(instructions)
    )
    return ParsedFlow(steps=steps, raw_description=description)


def format_step_prompt(step: FlowStep, previous_output: Optional[str] = None) -> str:
    """
    Build the prompt sent for one step.

    When the step consumes earlier output, that output is put in front of the
    instruction if the instruction refers to it, and appended after a
    "Content to work with:" label otherwise.
    """
    prompt = step.instruction

    if step.uses_previous_output and previous_output:
        if REFERENCES_OUTPUT.search(prompt):
            prompt = f"Given this content:\n\n{previous_output}\n\n{prompt}"
        else:
            prompt = f"{prompt}\n\nContent to work with:\n{previous_output}"

    return prompt

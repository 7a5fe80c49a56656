"""
Parser for the plain-text quiz format requested from the LLM providers

Expected shape of each question block:

    Q1: What is the primary function of X?
    A) Option A
    B) Option B
    C) Option C
    D) Option D
    Correct: A
    Explanation: Brief explanation of why A is correct

Model output drifts from this template often, so the parser never raises.
Blocks that are missing an option or an unambiguous correct label are
dropped whole; the caller decides whether what is left is enough.
"""
import logging
import re
from typing import Dict, List, Optional

from app.schemas.quiz import OPTION_LABELS, ParsedQuestion

logger = logging.getLogger(__name__)

MAX_QUESTIONS = 5

# Markdown emphasis and quoting LLMs like to wrap markers in
_DECORATION = "*_#> \t"

QUESTION_MARKER = re.compile(r"^[*_#> \t]*Q\d+[ \t]*:[*_]*", re.MULTILINE)
OPTION_LINE = re.compile(r"^([ABCD])\)[*_]*\s*(.*)$")
CORRECT_LINE = re.compile(r"^Correct(?:[ \t]+answer)?[*_]*[ \t]*:[*_]*\s*(.*)$", re.IGNORECASE)
EXPLANATION_LINE = re.compile(r"^Explanation[*_]*[ \t]*:[*_]*\s*(.*)$", re.IGNORECASE)
LABEL_VALUE = re.compile(r"\(?([A-Da-d])\)?\.?")


def parse_quiz_text(raw_text) -> List[ParsedQuestion]:
    """
    Convert raw provider text into at most five validated questions

    Args:
        raw_text: Completion text from the provider

    Returns:
        Parsed questions in source order; an empty list means nothing usable
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        return []

    text = raw_text.replace("\r\n", "\n").replace("\r", "\n")

    # Anything before the first marker is preamble, not a question
    blocks = QUESTION_MARKER.split(text)[1:]

    questions = []
    dropped = 0
    for block in blocks:
        parsed = _parse_block(block)
        if parsed is None:
            dropped += 1
            continue
        questions.append(parsed)

    if dropped:
        logger.warning(f"Dropped {dropped} malformed question block(s) out of {len(blocks)}")

    if len(questions) > MAX_QUESTIONS:
        logger.info(f"Parsed {len(questions)} questions, keeping the first {MAX_QUESTIONS}")

    return questions[:MAX_QUESTIONS]


def _parse_block(block: str) -> Optional[ParsedQuestion]:
    lines = [_clean(line) for line in block.split("\n")]
    lines = [line for line in lines if line]
    if not lines:
        return None

    question_text = lines[0]
    options: Dict[str, str] = {}
    labels = set()
    explanation = None

    for line in lines[1:]:
        option_match = OPTION_LINE.match(line)
        if option_match:
            label, option_text = option_match.groups()
            option_text = option_text.strip()
            # First occurrence wins
            if option_text and label not in options:
                options[label] = option_text
            continue

        correct_match = CORRECT_LINE.match(line)
        if correct_match:
            label = _parse_label(correct_match.group(1))
            # An unreadable label poisons the block just like a conflicting one
            labels.add(label)
            continue

        explanation_match = EXPLANATION_LINE.match(line)
        if explanation_match and explanation is None:
            explanation = explanation_match.group(1).strip() or None

    if len(options) != len(OPTION_LABELS):
        return None
    if len(labels) != 1:
        return None
    correct_answer = labels.pop()
    if correct_answer is None:
        return None

    return ParsedQuestion(
        question=question_text,
        options=options,
        correct_answer=correct_answer,
        explanation=explanation,
    )


def _parse_label(value: str) -> Optional[str]:
    match = LABEL_VALUE.fullmatch(value.strip(_DECORATION))
    if not match:
        return None
    return match.group(1).upper()


def _clean(line: str) -> str:
    return line.strip().lstrip(_DECORATION).rstrip("* \t")

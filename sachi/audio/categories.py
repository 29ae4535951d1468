"""
Coarse sound categories for raw pretrained-model labels.

Maps the model vocabulary (hundreds of AudioSet classes) onto the small
category set shown to the user, and picks an icon hint per label.
"""

import re
from typing import Optional, Sequence
import numpy as np

OTHER = "Other"
SPEECH = "Speech"

# Ordered: first matching rule wins
CATEGORY_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"speech|conversation|talk|talking|narration|whisper", re.IGNORECASE), SPEECH),
    (re.compile(r"car|vehicle|automobile|engine|horn|brake|traffic", re.IGNORECASE), "Vehicle"),
    (re.compile(r"dog|bark|woof", re.IGNORECASE), "Dog"),
    (re.compile(r"bell|doorbell|chime", re.IGNORECASE), "Bell"),
    (re.compile(r"siren|ambulance|police|fire truck", re.IGNORECASE), "Siren"),
    (re.compile(r"music|sing|song|melody|instrument", re.IGNORECASE), "Music"),
]

ICON_MAP = {
    "Speech": "fa-user",
    "Vehicle": "fa-car",
    "Music": "fa-music",
    "Dog": "fa-dog",
    "Bell": "fa-bell",
    "Alarm": "fa-bell",
    "Knock": "fa-door-closed",
    "Siren": "fa-bullhorn",
    "Other": "fa-wave-square",
}

# Substring heuristics for custom labels, checked in order
_ICON_HINTS = [
    (("speech", "talk"), "Speech"),
    (("car", "vehicle", "engine"), "Vehicle"),
    (("dog", "bark"), "Dog"),
    (("bell", "doorbell", "chime"), "Bell"),
    (("siren",), "Siren"),
    (("music", "sing"), "Music"),
]


def friendly_category(raw_label: Optional[str]) -> str:
    """Category for a raw model label, "Other" when no rule matches."""
    if not raw_label:
        return OTHER
    for pattern, category in CATEGORY_RULES:
        if pattern.search(raw_label):
            return category
    return OTHER


def is_speech_like(label: Optional[str]) -> bool:
    return friendly_category(label) == SPEECH


def resolve_label(index: int, vocabulary: Optional[Sequence[str]] = None) -> str:
    """Vocabulary name for a class index, or an indexed placeholder."""
    if vocabulary is not None and 0 <= index < len(vocabulary):
        return vocabulary[index]
    return f"class_{index}"


def categorize(
    scores: np.ndarray,
    vocabulary: Optional[Sequence[str]] = None,
    top_k: int = 5
) -> tuple[str, float, str]:
    """
    Pick the coarse category for a score vector.

    The top-scoring label decides unless it maps to "Other", in which case
    the top-k candidates are scanned by descending score and the first one
    with a category supplies both category and score.

    Returns:
        Tuple of (category, score, raw_label)
    """
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if scores.size == 0:
        return OTHER, 0.0, ""

    # Stable sort keeps the lowest index first among equal scores
    order = np.argsort(-scores, kind="stable")
    top_index = int(order[0])
    top_label = resolve_label(top_index, vocabulary)
    category = friendly_category(top_label)
    if category != OTHER:
        return category, float(scores[top_index]), top_label

    for index in order[:top_k]:
        raw = resolve_label(int(index), vocabulary)
        candidate = friendly_category(raw)
        if candidate != OTHER:
            return candidate, float(scores[index]), raw

    return OTHER, float(scores[top_index]), top_label


def icon_for_label(label: Optional[str]) -> str:
    """Icon hint for a category or custom label."""
    if not label:
        return ICON_MAP[OTHER]
    if label in ICON_MAP:
        return ICON_MAP[label]

    lowered = label.lower()
    for needles, category in _ICON_HINTS:
        if any(needle in lowered for needle in needles):
            return ICON_MAP[category]
    return ICON_MAP[OTHER]

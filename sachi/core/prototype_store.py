"""
Prototype Store - few-shot custom sound labels.

Each custom label keeps the running mean of its training embeddings;
incoming embeddings are matched by cosine similarity.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional
import numpy as np
from loguru import logger

from ..audio.features import cosine_similarity, l1_normalize


@dataclass
class Prototype:
    """Learned representative of one custom label."""
    label: str
    vector: np.ndarray  # L1-normalized running mean
    example_count: int = 1

    @property
    def dimension(self) -> int:
        return int(self.vector.size)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "vector": [float(x) for x in self.vector],
            "exampleCount": self.example_count,
        }


@dataclass(frozen=True)
class MatchResult:
    """Best custom match for an embedding."""
    label: Optional[str] = None
    score: float = 0.0
    scores: dict[str, float] = field(default_factory=dict)


class PrototypeStore:
    """
    Ordered collection of prototypes keyed by label.

    Insertion order is stable and decides ties during matching.
    """

    def __init__(self):
        self._prototypes: list[Prototype] = []
        self._index: dict[str, int] = {}
        self._mismatch_warned: set[str] = set()

    def train(self, label: str, embedding: np.ndarray) -> Prototype:
        """
        Add one training example.

        A new label stores the normalized embedding; an existing label takes
        the count-weighted mean with the incoming vector and re-normalizes.

        Raises:
            ValueError: On an empty label or embedding, or when the embedding
                dimension differs from the stored prototype.
        """
        label = (label or "").strip()
        if not label:
            raise ValueError("label must not be empty")

        incoming = np.asarray(embedding, dtype=np.float64).reshape(-1)
        if incoming.size == 0:
            raise ValueError("embedding must not be empty")

        if label not in self._index:
            prototype = Prototype(label=label, vector=l1_normalize(incoming), example_count=1)
            self._index[label] = len(self._prototypes)
            self._prototypes.append(prototype)
            logger.info(f"New prototype '{label}' ({incoming.size}-d)")
            return prototype

        prototype = self._prototypes[self._index[label]]
        if prototype.dimension != incoming.size:
            raise ValueError(
                f"embedding has {incoming.size} dims, prototype '{label}' has {prototype.dimension}"
            )

        count = prototype.example_count
        combined = (prototype.vector * count + incoming) / (count + 1)
        prototype.vector = l1_normalize(combined)
        prototype.example_count = count + 1
        self._mismatch_warned.discard(label)
        logger.info(f"Updated prototype '{label}' ({prototype.example_count} examples)")
        return prototype

    def match(self, embedding: Optional[np.ndarray]) -> MatchResult:
        """
        Find the most similar prototype.

        A prototype only becomes the match when it scores strictly above the
        current best (starting at 0), so the earliest inserted label wins ties
        and a store with no positive similarity yields no label.
        """
        if embedding is None or not self._prototypes:
            return MatchResult()

        query = np.asarray(embedding, dtype=np.float64).reshape(-1)
        best_label: Optional[str] = None
        best_score = 0.0
        scores = {}

        for prototype in self._prototypes:
            if prototype.dimension != query.size and prototype.label not in self._mismatch_warned:
                logger.warning(
                    f"Prototype '{prototype.label}' is {prototype.dimension}-d but embeddings "
                    f"are {query.size}-d; it will score 0 until retrained"
                )
                self._mismatch_warned.add(prototype.label)

            # Rounding can push parallel vectors a hair above 1
            score = min(cosine_similarity(query, prototype.vector), 1.0)
            scores[prototype.label] = score
            if score > best_score:
                best_label, best_score = prototype.label, score

        return MatchResult(label=best_label, score=best_score, scores=scores)

    def add(self, prototype: Prototype) -> None:
        """Insert or overwrite a prototype as-is (used by import/load)."""
        if prototype.label in self._index:
            self._prototypes[self._index[prototype.label]] = prototype
        else:
            self._index[prototype.label] = len(self._prototypes)
            self._prototypes.append(prototype)
        self._mismatch_warned.discard(prototype.label)

    def delete(self, label: str) -> bool:
        """Remove a label. Returns False when it was not stored."""
        if label not in self._index:
            return False
        del self._prototypes[self._index[label]]
        self._reindex()
        self._mismatch_warned.discard(label)
        logger.info(f"Deleted prototype '{label}'")
        return True

    def reset_all(self) -> None:
        self._prototypes.clear()
        self._index.clear()
        self._mismatch_warned.clear()
        logger.info("All prototypes removed")

    def _reindex(self) -> None:
        self._index = {p.label: i for i, p in enumerate(self._prototypes)}

    def get(self, label: str) -> Optional[Prototype]:
        index = self._index.get(label)
        return None if index is None else self._prototypes[index]

    @property
    def labels(self) -> list[str]:
        return [p.label for p in self._prototypes]

    def __contains__(self, label: str) -> bool:
        return label in self._index

    def __iter__(self) -> Iterator[Prototype]:
        return iter(list(self._prototypes))

    def __len__(self) -> int:
        return len(self._prototypes)

"""
Transient ML token types and the chunk model used for token-limited models.
"""
from dataclasses import dataclass, field, replace
from typing import List


@dataclass(frozen=True)
class MLToken:
    """One raw model prediction (BIO label or entity group)."""

    word: str
    entity: str
    score: float
    start: int
    end: int

    def shifted(self, offset: int) -> "MLToken":
        return replace(self, start=self.start + offset, end=self.end + offset)

    @classmethod
    def from_dict(cls, data: dict) -> "MLToken":
        """Accept both {'entity': ...} and {'entity_group': ...} shapes."""
        label = data.get("entity", data.get("entity_group", ""))
        return cls(
            word=data.get("word", ""),
            entity=label,
            score=float(data.get("score", 0.0)),
            start=int(data["start"]),
            end=int(data["end"]),
        )


@dataclass(frozen=True)
class MergedEntity:
    """A BIO run collapsed into one span with averaged confidence."""

    word: str
    entity: str
    score: float
    start: int
    end: int
    token_count: int


@dataclass(frozen=True)
class TextChunk:
    """Offset-tracked slice of a document; text == document[start:end]."""

    text: str
    start: int
    end: int
    chunk_index: int


@dataclass
class ChunkPrediction:
    """Model predictions for one chunk, in chunk-local offsets."""

    chunk_index: int
    predictions: List[MLToken] = field(default_factory=list)

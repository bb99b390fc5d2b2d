"""
Collapses BIO-labelled model tokens into entities.

Handles both token shapes emitted by NER pipelines:
- {"entity": "B-PER", ...}        (token classification)
- {"entity_group": "PER", ...}    (aggregated output)
"""
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Union

import numpy as np

from pii_detection.models.ml import MergedEntity, MLToken

TokenLike = Union[MLToken, dict]

OUTSIDE_LABEL = "O"


@dataclass(frozen=True)
class MergeConfig:
    min_length: int = 2
    max_gap: int = 5
    weighted_confidence: bool = False


def extract_entity_type(label: str) -> str:
    """'B-PER' / 'I-PER' -> 'PER'."""
    if label[:2] in ("B-", "I-"):
        return label[2:]
    return label


def is_inside_token(label: str) -> bool:
    return label.startswith("I-")


def is_beginning_token(label: str) -> bool:
    return label.startswith("B-")


def normalize_token(token: TokenLike) -> MLToken:
    return token if isinstance(token, MLToken) else MLToken.from_dict(token)


def _average(scores: List[float], weighted: bool) -> float:
    if weighted and len(scores) > 1:
        # earlier tokens weigh more: 1, 1/2, 1/3, ...
        weights = 1.0 / np.arange(1, len(scores) + 1)
        return float(np.average(scores, weights=weights))
    return float(np.mean(scores))


def merge_subword_tokens(
    tokens: Sequence[TokenLike],
    text: str,
    config: Optional[MergeConfig] = None,
) -> List[MergedEntity]:
    """
    Merge consecutive I- tokens of the same type into one entity.

    Args:
        tokens: Raw model tokens (any order).
        text: Document the offsets refer to; entity text is re-sliced from it.
        config: Minimum entity length, maximum gap between tokens, and
            whether to weight confidence by token position.

    Returns:
        Merged entities in document order, shorter than min_length dropped.
    """
    cfg = config or MergeConfig()

    entity_tokens = [
        t for t in (normalize_token(tok) for tok in tokens)
        if t.entity not in (OUTSIDE_LABEL, "")
    ]
    entity_tokens.sort(key=lambda t: t.start)

    merged: List[MergedEntity] = []
    current = None     # [entity_type, start, end, scores]

    def finalize() -> None:
        if current is None:
            return
        entity_type, start, end, scores = current
        merged.append(MergedEntity(
            word=text[start:end],
            entity=entity_type,
            score=_average(scores, cfg.weighted_confidence),
            start=start,
            end=end,
            token_count=len(scores),
        ))

    for token in entity_tokens:
        entity_type = extract_entity_type(token.entity)
        if (
            current is not None
            and is_inside_token(token.entity)
            and current[0] == entity_type
            and token.start - current[2] <= cfg.max_gap
        ):
            current[2] = max(current[2], token.end)
            current[3].append(token.score)
        else:
            finalize()
            current = [entity_type, token.start, token.end, [token.score]]
    finalize()

    return [e for e in merged if len(e.word) >= cfg.min_length]


def merge_tokens(tokens: Sequence[TokenLike], text: str, min_length: int = 2) -> List[MergedEntity]:
    return merge_subword_tokens(tokens, text, MergeConfig(min_length=min_length))


class SubwordTokenMerger:
    def __init__(self, config: Optional[MergeConfig] = None) -> None:
        self.config = config or MergeConfig()

    def merge(self, tokens: Sequence[TokenLike], text: str) -> List[MergedEntity]:
        return merge_subword_tokens(tokens, text, self.config)

    def get_config(self) -> MergeConfig:
        return self.config

    def configure(self, **changes) -> None:
        self.config = replace(self.config, **changes)

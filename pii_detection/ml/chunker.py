"""
Sentence-aware text splitting for token-limited NER models.

Chunks are exact slices of the document (chunk.text == text[start:end]);
consecutive chunks share up to ``overlap_tokens`` worth of trailing
sentences so entities on a chunk edge are seen whole at least once.
Predictions from all chunks are shifted back to document offsets and
deduplicated by merge_chunk_predictions().
"""
import math
import re
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple

from pii_detection.config import settings
from pii_detection.models.ml import ChunkPrediction, MLToken, TextChunk

Tokenizer = Callable[[str], int]

_ABBREVIATION = re.compile(
    r"(?<!\w)(?:Mr|Mrs|Ms|Dr|Prof|Sr|Jr|vs|etc|e\.g|i\.e|Inc|Ltd|Corp|Co"
    r"|z\.B|bzw|ca|Nr|Hr|Fr|Str|St|Mme|Mlle|Sig|Dott)\.$",
    re.IGNORECASE,
)
_ABBREVIATION_LOOKBACK = 12

_WORD = re.compile(r"\S+\s*")


@dataclass(frozen=True)
class ChunkConfig:
    max_tokens: int = 512
    overlap_tokens: int = 50
    tokenizer: Optional[Tokenizer] = None


def estimate_token_count(text: str) -> int:
    """Rough token estimate: max(chars / 4, whitespace-separated words)."""
    return max(math.ceil(len(text) / 4), len(text.split()))


def split_into_sentences(text: str) -> List[Tuple[int, int]]:
    """
    Split text into sentence spans that partition it exactly.

    A sentence ends at '.', '!' or '?' followed by a newline, by whitespace
    and an uppercase letter, or by the end of the text; trailing whitespace
    belongs to the sentence it follows. Common abbreviations (Dr., z.B., ...)
    never end a sentence.
    """
    spans: List[Tuple[int, int]] = []
    n = len(text)
    start = 0
    i = 0
    while i < n:
        if text[i] in ".!?":
            nxt = text[i + 1] if i + 1 < n else ""
            after = text[i + 2] if i + 2 < n else ""
            boundary = (
                i == n - 1
                or nxt == "\n"
                or (nxt.isspace() and after.isupper())
            )
            if boundary and not _ABBREVIATION.search(
                text[max(start, i + 1 - _ABBREVIATION_LOOKBACK):i + 1]
            ):
                j = i + 1
                while j < n and text[j].isspace():
                    j += 1
                spans.append((start, j))
                start = i = j
                continue
        i += 1

    if start < n:
        spans.append((start, n))
    return spans


def split_oversized_span(
    text: str, start: int, end: int, max_tokens: int, tokenize: Tokenizer
) -> List[Tuple[int, int]]:
    """
    Cut one over-budget sentence into pieces that fit, on whitespace.

    A single word that is still over budget is cut into equal character
    slices. The pieces partition text[start:end] exactly.
    """
    pieces: List[Tuple[int, int]] = []
    piece_start = start
    for m in _WORD.finditer(text, start, end):
        ws, we = m.start(), m.end()
        word_tokens = tokenize(text[ws:we])
        if word_tokens > max_tokens:
            if piece_start < ws:
                pieces.append((piece_start, ws))
            step = max(1, (we - ws) * max_tokens // word_tokens)
            pieces.extend((s, min(s + step, we)) for s in range(ws, we, step))
            piece_start = we
        elif piece_start < ws and tokenize(text[piece_start:we]) > max_tokens:
            pieces.append((piece_start, ws))
            piece_start = ws
    if piece_start < end:
        pieces.append((piece_start, end))
    return pieces


def chunk_text(text: str, config: Optional[ChunkConfig] = None) -> List[TextChunk]:
    """
    Split text into model-sized chunks on sentence boundaries.

    Args:
        text: Full document text.
        config: Token limit, overlap and optional tokenizer.

    Returns:
        Ordered chunks; a single chunk when the text already fits.
    """
    cfg = config or ChunkConfig()
    tokenize = cfg.tokenizer or estimate_token_count

    if not text:
        return []
    if tokenize(text) <= cfg.max_tokens:
        return [TextChunk(text=text, start=0, end=len(text), chunk_index=0)]

    spans: List[Tuple[int, int]] = []
    for s, e in split_into_sentences(text):
        if tokenize(text[s:e]) > cfg.max_tokens:
            spans.extend(split_oversized_span(text, s, e, cfg.max_tokens, tokenize))
        else:
            spans.append((s, e))
    sentence_tokens = [tokenize(text[s:e]) for s, e in spans]
    chunks: List[TextChunk] = []

    def emit(indices: List[int]) -> None:
        start, end = spans[indices[0]][0], spans[indices[-1]][1]
        chunks.append(TextChunk(text=text[start:end], start=start, end=end,
                                chunk_index=len(chunks)))

    current: List[int] = []
    count = 0
    for idx, tokens in enumerate(sentence_tokens):
        if current and count + tokens > cfg.max_tokens:
            emit(current)
            # carry trailing sentences; the first sentence is never carried
            overlap: List[int] = []
            overlap_count = 0
            for j in reversed(current[1:]):
                if overlap_count >= cfg.overlap_tokens:
                    break
                overlap.insert(0, j)
                overlap_count += sentence_tokens[j]
            while overlap and overlap_count + tokens > cfg.max_tokens:
                overlap_count -= sentence_tokens[overlap.pop(0)]
            current, count = overlap, overlap_count
        current.append(idx)
        count += tokens

    if current:
        emit(current)
    return chunks


def _overlap_ratio_exceeded(a: MLToken, b: MLToken) -> bool:
    overlap = max(0, min(a.end, b.end) - max(a.start, b.start))
    shorter = min(a.end - a.start, b.end - b.start)
    return overlap > shorter * 0.5


def merge_chunk_predictions(
    chunk_predictions: List[ChunkPrediction],
    chunks: List[TextChunk],
) -> List[MLToken]:
    """Shift chunk-local predictions to document offsets and dedupe overlaps."""
    if not chunk_predictions or not chunks:
        return []

    by_index: Dict[int, TextChunk] = {c.chunk_index: c for c in chunks}
    shifted: List[MLToken] = []
    for cp in chunk_predictions:
        chunk = by_index.get(cp.chunk_index)
        if chunk is None:
            continue
        shifted.extend(p.shifted(chunk.start) for p in cp.predictions)

    shifted.sort(key=lambda p: (p.start, p.end))

    merged: List[MLToken] = []
    for pred in shifted:
        idx = next(
            (k for k, existing in enumerate(merged)
             if existing.entity == pred.entity and _overlap_ratio_exceeded(existing, pred)),
            None,
        )
        if idx is None:
            merged.append(pred)
            continue
        existing = merged[idx]
        winner = pred if pred.score > existing.score else existing
        merged[idx] = replace(
            winner,
            start=min(existing.start, pred.start),
            end=max(existing.end, pred.end),
        )
    return merged


def needs_chunking(text: str, max_tokens: int = 512) -> bool:
    return estimate_token_count(text) > max_tokens


class TextChunker:
    """Stateful wrapper around the chunking functions."""

    def __init__(self, config: Optional[ChunkConfig] = None) -> None:
        self.config = config or ChunkConfig(
            max_tokens=settings.ML_MAX_TOKENS,
            overlap_tokens=settings.ML_OVERLAP_TOKENS,
        )

    def chunk(self, text: str) -> List[TextChunk]:
        return chunk_text(text, self.config)

    def needs_chunking(self, text: str) -> bool:
        tokenize = self.config.tokenizer or estimate_token_count
        return tokenize(text) > self.config.max_tokens

    def merge_predictions(
        self, chunk_predictions: List[ChunkPrediction], chunks: List[TextChunk]
    ) -> List[MLToken]:
        return merge_chunk_predictions(chunk_predictions, chunks)

    def get_config(self) -> ChunkConfig:
        return self.config

    def configure(self, **changes) -> None:
        self.config = replace(self.config, **changes)

"""Split chapter text into overlapping chunks for map-reduce summarization."""

import math
import re
from typing import Literal

from langchain_text_splitters import RecursiveCharacterTextSplitter

DEFAULT_CHUNK_SIZE = 2000
DEFAULT_CHUNK_OVERLAP = 200

# Paragraphs, lines, full-width then half-width punctuation, words, characters
DEFAULT_SEPARATORS = ["\n\n", "\n", "。", "！", "？", "；", "，", ",", " ", ""]


def create_text_splitter(
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    separators: list[str] | None = None,
) -> RecursiveCharacterTextSplitter:
    """Splitter that prefers the highest-priority separator fitting the chunk size."""
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=min(chunk_overlap, max(chunk_size - 1, 0)),
        separators=separators or DEFAULT_SEPARATORS,
        length_function=len,
    )


def split_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    separators: list[str] | None = None,
) -> list[str]:
    """Split text into chunks of at most ``chunk_size`` characters."""
    splitter = create_text_splitter(chunk_size, chunk_overlap, separators)
    return splitter.split_text(text)


def estimate_chunk_count(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Rough chunk count before splitting."""
    return math.ceil(len(text) / chunk_size)


# USD per million tokens (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4o": (2.5, 10),
    "gpt-4o-mini": (0.15, 0.6),
    "gpt-4-turbo": (10, 30),
    "gpt-4": (30, 60),
    "claude-3-5-sonnet-20241022": (3, 15),
    "claude-3-opus": (15, 75),
    "claude-3-sonnet": (3, 15),
    "glm-4": (0.1, 0.1),
    "glm-4-flash": (0.001, 0.001),
    "qwen-plus": (0.4, 0.4),
    "qwen-max": (4, 4),
}
DEFAULT_PRICING_MODEL = "gpt-4o-mini"

_CJK_RE = re.compile(r"[一-龥]")
_WORD_RE = re.compile(r"[a-zA-Z]+")


def estimate_tokens(text: str) -> int:
    """Heuristic token count: ~1.5 per CJK character, ~1.3 per English word."""
    cjk_chars = len(_CJK_RE.findall(text))
    words = len(_WORD_RE.findall(text))
    other = len(text) - cjk_chars - words
    return math.ceil(cjk_chars * 1.5 + words * 1.3 + other * 0.3)


def estimate_cost(tokens: int, model: str, kind: Literal["input", "output"] = "input") -> float:
    """Approximate USD cost; unknown models are priced as gpt-4o-mini."""
    input_price, output_price = MODEL_PRICING.get(model, MODEL_PRICING[DEFAULT_PRICING_MODEL])
    price = input_price if kind == "input" else output_price
    return tokens / 1_000_000 * price


def format_tokens(tokens: int) -> str:
    if tokens < 1000:
        return f"{tokens} tokens"
    if tokens < 1_000_000:
        return f"{tokens / 1000:.1f}K tokens"
    return f"{tokens / 1_000_000:.2f}M tokens"

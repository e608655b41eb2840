"""Text chunking — fixed-size word windows."""

from __future__ import annotations

DEFAULT_MAX_WORDS_PER_CHUNK = 300


def count_words(text: str) -> int:
    """Return the number of whitespace-separated words in *text*."""
    return len(text.split())


def chunk_text(text: str, max_words_per_chunk: int = DEFAULT_MAX_WORDS_PER_CHUNK) -> list[str]:
    """Split *text* into consecutive windows of at most *max_words_per_chunk* words.

    Parameters
    ----------
    text:
        Raw document text.  Any run of whitespace separates words and is
        collapsed to a single space in the output.
    max_words_per_chunk:
        Window size in words.  Every chunk but the last has exactly this
        many words.

    Returns
    -------
    list[str]
        Chunks in document order; empty for blank input.
    """
    if max_words_per_chunk <= 0:
        raise ValueError(f"max_words_per_chunk must be > 0, got {max_words_per_chunk}")

    words = text.split()
    return [
        " ".join(words[start : start + max_words_per_chunk])
        for start in range(0, len(words), max_words_per_chunk)
    ]

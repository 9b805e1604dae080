"""Chapter summarization prompts and the map-reduce chain."""

import logging
from concurrent.futures import ThreadPoolExecutor

from epub_digest.core.providers import LLMProvider

log = logging.getLogger(__name__)

SUMMARY_DELIMITER = "\n\n---\n\n"

MAP_PROMPT = """Summarize the key points of the following chapter excerpt:

{chunk}

Requirements:
- Be concise: 100-150 words
- Extract the main content and key information
- Stay objective and accurate

Summary:"""

REDUCE_PROMPT = """The following are summaries of different parts of the same chapter:

{summaries}

Merge these summaries into one coherent chapter summary. Requirements:
1. Length: 200-500 words
2. Cover the chapter's main content and central ideas
3. Highlight important people, events or concepts
4. Keep the logic connected and the language fluent
5. Stay objective and accurate; do not add anything that is not in the summaries above

Chapter summary:"""

DIRECT_PROMPT = """Summarize the following chapter. Requirements:
1. Length: 200-500 words
2. Cover the main content and central ideas
3. Highlight important people, events or concepts
4. Keep the logic connected and the language fluent

Chapter content:
{text}

Chapter summary:"""


def summarize_chunks(
    provider: LLMProvider,
    chunks: list[str],
    max_concurrency: int = 4,
) -> str:
    """Map each chunk to a partial summary in parallel, then reduce them into one."""
    if not chunks:
        raise ValueError("No chunks to summarize")

    workers = max(1, min(max_concurrency, len(chunks)))
    log.debug("Map phase: %d chunk(s), %d worker(s)", len(chunks), workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        # map() keeps chunk order and re-raises the first provider error
        partials = list(
            executor.map(lambda chunk: provider.invoke(MAP_PROMPT.format(chunk=chunk)), chunks)
        )

    log.debug("Reduce phase: merging %d partial summaries", len(partials))
    return provider.invoke(REDUCE_PROMPT.format(summaries=SUMMARY_DELIMITER.join(partials)))


def summarize_short(provider: LLMProvider, text: str) -> str:
    """Summarize a chapter that fits in a single prompt."""
    return provider.invoke(DIRECT_PROMPT.format(text=text))

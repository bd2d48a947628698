"""Delimiter-based text chunking with a character budget and overlap.

Splits raw document text into strings sized for the embedding model.

The algorithm works in two phases:

1. **Greedy accumulation** -- the text is split on the delimiter and pieces
   are appended to a running buffer until the next one would push it past
   ``max_chunk_length``; the buffer is then closed and a new one starts with
   that piece.  With the default newline delimiter, lines are rejoined with
   ``\\n``.  With a custom delimiter each piece keeps the delimiter as a
   suffix (counted against the budget) and closed chunks are right-trimmed.

2. **Overlap** -- when ``chunk_overlap > 0`` and there is more than one
   chunk, every chunk after the first is prefixed with the last
   ``chunk_overlap`` characters of the previous chunk *as it was before*
   any prefix was added, so overlap never cascades.

A single piece longer than the budget is kept whole by default
(``OversizedPolicy.PRESERVE``).  ``OversizedPolicy.HARD_SPLIT`` cuts such
pieces into ``max_chunk_length`` slices before accumulation, so every chunk
stays within budget before overlap is added.
"""

from __future__ import annotations

import structlog

from kb_assistant.models.documents import ChunkSettings, OversizedPolicy

logger = structlog.get_logger(logger_name=__name__)

_NEWLINE = "\n"


class TextChunker:
    """Splits text into overlapping chunks under a character budget.

    Stateless; one instance can serve any number of concurrent uploads.
    Settings are supplied per call because each upload may carry its own.
    """

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, settings: ChunkSettings | None = None) -> list[str]:
        """Split *text* into chunks according to *settings*.

        Parameters
        ----------
        text:
            The full document content.
        settings:
            Chunking parameters; defaults to ``ChunkSettings()``.

        Returns
        -------
        list[str]
            Chunks in document order.  Empty input returns an empty list.
        """
        settings = settings or ChunkSettings()
        if not text:
            return []

        if settings.delimiter == _NEWLINE:
            chunks = self._accumulate_lines(text, settings)
        else:
            chunks = self._accumulate_delimited(text, settings)

        chunks = self._apply_overlap(chunks, settings.chunk_overlap)

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            max_chunk_length=settings.max_chunk_length,
            overlap=settings.chunk_overlap,
            policy=settings.oversized_policy.value,
        )
        return chunks

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def _accumulate_lines(self, text: str, settings: ChunkSettings) -> list[str]:
        limit = settings.max_chunk_length
        chunks: list[str] = []
        current = ""

        for line in self._split_oversized(text.split(_NEWLINE), settings):
            if len(current) + len(line) + 1 <= limit:
                current += (_NEWLINE if current else "") + line
            else:
                if current:
                    chunks.append(current)
                current = line

        if current:
            chunks.append(current)
        return chunks

    def _accumulate_delimited(self, text: str, settings: ChunkSettings) -> list[str]:
        limit = settings.max_chunk_length
        pieces = [part + settings.delimiter for part in text.split(settings.delimiter)]
        chunks: list[str] = []
        current = ""

        for piece in self._split_oversized(pieces, settings):
            if len(current) + len(piece) <= limit:
                current += piece
            else:
                self._close(current, chunks)
                current = piece

        self._close(current, chunks)
        return chunks

    @staticmethod
    def _close(buffer: str, chunks: list[str]) -> None:
        closed = buffer.rstrip()
        if closed:
            chunks.append(closed)

    @staticmethod
    def _split_oversized(pieces: list[str], settings: ChunkSettings) -> list[str]:
        """Cut pieces longer than the budget when the policy asks for it."""
        limit = settings.max_chunk_length
        if settings.oversized_policy is not OversizedPolicy.HARD_SPLIT:
            return pieces

        result: list[str] = []
        for piece in pieces:
            if len(piece) <= limit:
                result.append(piece)
                continue
            result.extend(piece[start : start + limit] for start in range(0, len(piece), limit))
        return result

    # ------------------------------------------------------------------
    # Overlap
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_overlap(chunks: list[str], overlap: int) -> list[str]:
        if overlap <= 0 or len(chunks) < 2:
            return chunks
        return [chunks[0]] + [
            chunks[i - 1][-overlap:] + chunks[i] for i in range(1, len(chunks))
        ]

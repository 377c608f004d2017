"""
Chunking utilities with pluggable strategies.

Sizes are measured in characters. Both strategies split only on whitespace,
so a word is never cut in half; a single word longer than the chunk size
is rejected with ChunkingError rather than truncated.
"""

import re
import uuid
from typing import Callable, Dict, Iterable, List

from langchain_text_splitters import (
    RecursiveCharacterTextSplitter,
    CharacterTextSplitter,
)

from .constants import METADATA_CHUNK_INDEX, METADATA_FILENAME
from .errors import ChunkingError
from .logging_utils import get_logger
from .models import Chunk, Document


logger = get_logger(__name__)

# Paragraph, then line, then word boundaries. No "" fallback: that would
# split inside words.
RECURSIVE_SEPARATORS = ["\n\n", "\n", " "]

# Runs of whitespace other than "\n" collapse to a single space.
_INLINE_WHITESPACE = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE = re.compile(r" ?\n ?")

SplitFn = Callable[[str], List[str]]


def _normalise_whitespace(text: str) -> str:
    return _SPACE_AROUND_NEWLINE.sub("\n", _INLINE_WHITESPACE.sub(" ", text))


def recursive_splitter(chunk_size: int, chunk_overlap: int) -> SplitFn:
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=RECURSIVE_SEPARATORS,
        length_function=len,
    )

    def split(text: str) -> List[str]:
        return splitter.split_text(_normalise_whitespace(text))

    return split


def fixed_splitter(chunk_size: int, chunk_overlap: int) -> SplitFn:
    """
    Word packing using CharacterTextSplitter.

    Runs of whitespace (newlines included) collapse to single spaces first,
    so document layout is not preserved.
    """
    splitter = CharacterTextSplitter(
        separator=" ",
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        length_function=len,
    )

    def split(text: str) -> List[str]:
        return splitter.split_text(" ".join(text.split()))

    return split


SPLITTERS: Dict[str, Callable[[int, int], SplitFn]] = {
    "recursive": recursive_splitter,
    "fixed": fixed_splitter,
}


def _validate_sizes(chunk_size: int, chunk_overlap: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_overlap < 0 or chunk_overlap >= chunk_size:
        raise ValueError(
            f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap} "
            f"with chunk_size={chunk_size}"
        )


def split_document(document: Document, split: SplitFn, chunk_size: int) -> List[Chunk]:
    chunks: List[Chunk] = []
    for piece in split(document.text):
        piece = piece.strip()
        if not piece:
            continue
        if len(piece) > chunk_size:
            longest = max(len(word) for word in piece.split())
            raise ChunkingError(
                f"Cannot split '{document.metadata.get(METADATA_FILENAME, '<unknown>')}' "
                f"into chunks of at most {chunk_size} characters: it contains an "
                f"unbreakable run of {longest} characters."
            )
        metadata = dict(document.metadata)
        metadata[METADATA_CHUNK_INDEX] = str(len(chunks))
        chunks.append(Chunk(id=str(uuid.uuid4()), text=piece, metadata=metadata))
    return chunks


def chunk_documents(
    documents: Iterable[Document],
    strategy: str,
    chunk_size: int,
    chunk_overlap: int,
) -> List[Chunk]:
    """
    Split documents into chunks without embeddings.

    Each chunk copies its document's metadata and adds ``chunk_index``,
    its 0-based position within that document.
    """
    strategy = strategy.lower()
    if strategy not in SPLITTERS:
        raise ValueError(f"Unsupported chunking strategy: {strategy}")
    _validate_sizes(chunk_size, chunk_overlap)

    logger.info(
        "Chunking documents with strategy=%s, chunk_size=%d, overlap=%d",
        strategy,
        chunk_size,
        chunk_overlap,
    )

    split = SPLITTERS[strategy](chunk_size, chunk_overlap)
    chunks: List[Chunk] = []
    for document in documents:
        chunks.extend(split_document(document, split, chunk_size))

    logger.info("%s chunking produced %d chunks", strategy.capitalize(), len(chunks))
    return chunks

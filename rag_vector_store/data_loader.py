"""
Data loading utilities for plain-text and tabular (CSV/Excel) source documents.
"""

from pathlib import Path
from typing import Dict, List, Mapping, Optional

import pandas as pd

from .constants import (
    DEFAULT_TEXT_COLUMNS,
    METADATA_COLUMN,
    METADATA_FILENAME,
    METADATA_ROW_NUMBER,
    METADATA_SOURCE,
    TABULAR_EXTENSIONS,
)
from .errors import SourceNotFoundError
from .logging_utils import get_logger
from .models import Document


logger = get_logger(__name__)


def _base_metadata(path: Path, extra: Optional[Mapping[str, str]]) -> Dict[str, str]:
    metadata = {
        METADATA_FILENAME: path.name,
        METADATA_SOURCE: str(path),
    }
    if extra:
        metadata.update({str(k): str(v) for k, v in extra.items()})
    return metadata


def load_text_document(
    source_path: str,
    metadata: Optional[Mapping[str, str]] = None,
    encoding: str = "utf-8",
) -> List[Document]:
    """
    Read a plain-text file as a single document.
    """
    path = Path(source_path)
    logger.info("Loading text document '%s'", path)
    try:
        text = path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceNotFoundError(f"Cannot read source document '{path}': {exc}") from exc

    logger.info("Loaded %d characters from '%s'", len(text), path.name)
    return [Document(text=text, metadata=_base_metadata(path, metadata))]


def load_tabular_documents(
    source_path: str,
    text_columns: List[str],
    sheet_name: Optional[str] = None,
    metadata: Optional[Mapping[str, str]] = None,
) -> List[Document]:
    """
    Load one document per row of a CSV or Excel file.

    The configured columns are tried in order (case-insensitively) and the
    first non-empty value of each row becomes the document text.
    """
    path = Path(source_path)
    logger.info(
        "Loading tabular source '%s' (sheet=%s, columns=%s)",
        path,
        sheet_name or "<default>",
        text_columns,
    )

    try:
        if path.suffix.lower() == ".csv":
            df = pd.read_csv(path)
        else:
            df = pd.read_excel(path, sheet_name=sheet_name or 0)
    except (OSError, ValueError) as exc:
        raise SourceNotFoundError(f"Cannot read source document '{path}': {exc}") from exc

    # Allow case-insensitive matching between expected and actual column names.
    lower_to_actual = {str(c).lower(): str(c) for c in df.columns}
    available_cols = []
    for expected in text_columns:
        if expected in df.columns:
            available_cols.append(expected)
        else:
            lowered = expected.lower()
            if lowered in lower_to_actual:
                available_cols.append(lower_to_actual[lowered])

    if not available_cols:
        raise SourceNotFoundError(
            f"None of the expected text columns {text_columns} "
            f"were found in '{path.name}'. Available columns: {list(df.columns)}"
        )

    logger.info("Using text columns: %s", available_cols)

    documents: List[Document] = []
    for idx, row in df.iterrows():
        for col in available_cols:
            text = str(row[col]) if pd.notna(row[col]) else ""
            if text.strip():
                row_metadata = _base_metadata(path, metadata)
                row_metadata[METADATA_ROW_NUMBER] = str(int(idx) + 1)  # 1-indexed
                row_metadata[METADATA_COLUMN] = col
                documents.append(Document(text=text, metadata=row_metadata))
                break  # Only use one text column per row

    logger.info("Loaded %d row documents from '%s'", len(documents), path.name)
    return documents


def load_documents(
    source_path: str,
    metadata: Optional[Mapping[str, str]] = None,
    text_columns: Optional[List[str]] = None,
    sheet_name: Optional[str] = None,
) -> List[Document]:
    """
    Load a source document, dispatching on its extension.

    Every returned document carries the source's base name under
    ``filename`` and its path under ``source``.
    """
    path = Path(source_path)
    if not path.is_file():
        raise SourceNotFoundError(f"Source document '{path}' does not exist.")

    if path.suffix.lower() in TABULAR_EXTENSIONS:
        return load_tabular_documents(
            source_path,
            text_columns=text_columns or DEFAULT_TEXT_COLUMNS,
            sheet_name=sheet_name,
            metadata=metadata,
        )
    return load_text_document(source_path, metadata=metadata)

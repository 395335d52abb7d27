"""Corpus loading: CSV / JSON / loose records -> validated CorpusDocument list."""

from pathlib import Path
from typing import Any, Iterable

import pandas as pd
from pydantic import ValidationError

from equipment_search.corpus.models import CorpusDocument
from equipment_search.errors import IndexBuildError
from equipment_search.logger import get_logger

logger = get_logger(__name__)


class CorpusLoader:
    """
    Converts externally owned, loosely typed records into CorpusDocument.

    Untyped records never travel past this point.
    """

    def from_records(self, records: Iterable[dict[str, Any]]) -> list[CorpusDocument]:
        documents: list[CorpusDocument] = []
        for position, record in enumerate(records):
            try:
                documents.append(CorpusDocument.model_validate(record))
            except ValidationError as e:
                raise IndexBuildError(
                    f"Invalid corpus record at position {position} "
                    f"(id={record.get('id')!r}): {e.error_count()} validation error(s)"
                ) from e

        if not documents:
            raise IndexBuildError("Corpus is empty")

        logger.info("corpus_validated", count=len(documents))
        return documents

    def from_csv(self, csv_path: str | Path) -> list[CorpusDocument]:
        """Load a CSV with at least an id and a text/rawText column."""
        csv_path = Path(csv_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV not found: {csv_path}")

        df = pd.read_csv(csv_path, dtype=str)
        return self._from_frame(df, source=csv_path)

    def from_json(self, json_path: str | Path) -> list[CorpusDocument]:
        """Load a JSON array of records."""
        json_path = Path(json_path)
        if not json_path.exists():
            raise FileNotFoundError(f"JSON not found: {json_path}")

        df = pd.read_json(json_path, orient="records", dtype=False)
        return self._from_frame(df.astype(object), source=json_path)

    def _from_frame(self, df: pd.DataFrame, source: Path) -> list[CorpusDocument]:
        text_columns = [c for c in ("rawText", "raw_text", "text") if c in df.columns]
        if "id" not in df.columns or not text_columns:
            raise IndexBuildError(
                f"{source} must contain an 'id' column and one of rawText/raw_text/text"
            )

        df = df.dropna(subset=text_columns, how="all")
        df = df.where(pd.notna(df), None)
        records = [
            {k: (str(v) if v is not None else None) for k, v in row.items()}
            for row in df.to_dict(orient="records")
        ]
        logger.info("corpus_file_loaded", path=str(source), rows=len(records))
        return self.from_records(records)

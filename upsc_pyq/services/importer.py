import re
from datetime import datetime
from typing import Callable, Iterator, List, Optional

import pandas as pd
from fastapi import Depends
from supabase import Client

from upsc_pyq.config import Settings, get_settings
from upsc_pyq.core.exceptions import ImportFailed, ImportValidationError
from upsc_pyq.core.logging_config import OperationLogger, logger
from upsc_pyq.db import get_supabase_admin
from upsc_pyq.schemas.imports import ImportProgress, ImportResult, ImportStatus
from upsc_pyq.schemas.questions import DEFAULT_SUBJECT, SUBJECTS, QuestionType

CSV_COLUMNS = [
    "question_text",
    "year",
    "subject",
    "exam_type",
    "keywords",
    "options",
    "correct_answer",
    "explanation",
    "question_type",
    "marks",
]

LIST_DELIMITER = ";"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _int_or_default(value, default: int) -> int:
    """Leading integer of a cell, e.g. '2019' or '5 marks'; default when there is none."""
    match = _LEADING_INT.match(_text(value))
    return int(match.group(1)) if match else default


def _positive_int_or_default(value, default: int) -> int:
    number = _int_or_default(value, default)
    return number if number >= 1 else default


def _split(value) -> List[str]:
    return [part.strip() for part in _text(value).split(LIST_DELIMITER)]


def parse_row(row: dict, row_number: int) -> dict:
    """Build an exam_questions record from one CSV row.

    ``row_number`` is the spreadsheet row, counting the header as row 1.
    An unknown subject rejects the row; unparseable year and marks fall back
    to the current year and 1, as do marks below 1.
    """
    subject = _text(row.get("subject")) or DEFAULT_SUBJECT
    if subject not in SUBJECTS:
        raise ImportValidationError(
            f'Invalid subject "{subject}" in row {row_number}. Valid subjects: {", ".join(SUBJECTS)}',
            row_number=row_number,
            value=subject,
        )

    question_type = _text(row.get("question_type")).lower() or QuestionType.MCQ.value
    if question_type not in {t.value for t in QuestionType}:
        raise ImportValidationError(
            f'Invalid question_type "{question_type}" in row {row_number}',
            row_number=row_number,
            value=question_type,
        )

    record = {
        "question_text": _text(row.get("question_text")),
        "year": _int_or_default(row.get("year"), datetime.now().year),
        "subject": subject,
        "exam_type": _text(row.get("exam_type")) or "Prelims",
        "keywords": [k for k in _split(row.get("keywords")) if k],
        "question_type": question_type,
        "marks": _positive_int_or_default(row.get("marks"), 1),
    }

    explanation = _text(row.get("explanation"))
    if explanation:
        record["explanation"] = explanation

    if question_type == QuestionType.MCQ.value:
        if _text(row.get("options")):
            record["options"] = _split(row.get("options"))
        correct_answer = _text(row.get("correct_answer"))
        if correct_answer:
            record["correct_answer"] = correct_answer

    return record


class BulkImporter:
    def __init__(self, supabase: Client, settings: Settings = None):
        self.supabase = supabase
        self.settings = settings or get_settings()

    def parse_csv(self, source) -> List[dict]:
        """Parse every row of a CSV file, failing on the first invalid one.

        Blank lines are kept as empty rows so that row numbers in errors match
        the spreadsheet; the empty rows themselves are skipped.
        """
        try:
            df = pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=False)
        except pd.errors.EmptyDataError as e:
            raise ImportValidationError("CSV file is empty") from e
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ImportValidationError(f"Could not parse CSV file: {e}") from e
        # blank lines and short rows come back as NaN even without default NaN values
        df = df.fillna("")

        missing = [c for c in CSV_COLUMNS if c not in df.columns]
        if missing:
            logger.warning("CSV is missing columns, using defaults", missing=missing)

        records = []
        for index, row in enumerate(df.to_dict(orient="records")):
            if not any(_text(v) for v in row.values()):
                continue
            records.append(parse_row(row, index + 2))
        return records

    def iter_import(self, records: List[dict], user_id: str) -> Iterator[ImportProgress]:
        """Insert records in sequential batches, yielding progress after each one.

        A failed batch raises ImportFailed; earlier batches stay committed.
        """
        total = len(records)
        batch_size = self.settings.IMPORT_BATCH_SIZE
        payload = [{**r, "is_database_question": True, "user_id": user_id} for r in records]

        imported = 0
        for start in range(0, total, batch_size):
            batch = payload[start:start + batch_size]
            try:
                self.supabase.table(self.settings.QUESTIONS_TABLE).insert(batch).execute()
            except Exception as e:
                logger.error(
                    "Error inserting import batch",
                    error=str(e),
                    batch_start=start,
                    imported=imported,
                    total=total,
                )
                raise ImportFailed(
                    f"Import stopped after {imported} of {total} questions: {e}",
                    imported=imported,
                    total=total,
                ) from e
            imported += len(batch)
            yield ImportProgress(imported=imported, total=total)

    def import_csv(
        self,
        source,
        user_id: str,
        on_progress: Optional[Callable[[ImportProgress], None]] = None,
    ) -> ImportResult:
        with OperationLogger("question_import", user_id=user_id) as op:
            records = self.parse_csv(source)
            op.bind(total=len(records))
            imported = 0
            for progress in self.iter_import(records, user_id):
                imported = progress.imported
                if on_progress is not None:
                    on_progress(progress)

        return ImportResult(
            imported=imported,
            total=len(records),
            status=ImportStatus.SUCCESS,
            message=f"Successfully imported {imported} questions",
        )


def get_bulk_importer(supabase: Client = Depends(get_supabase_admin)) -> BulkImporter:
    return BulkImporter(supabase)

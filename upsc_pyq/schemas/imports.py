from pydantic import BaseModel, computed_field
from typing import Optional
from enum import Enum


class ImportStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


class ImportProgress(BaseModel):
    imported: int
    total: int
    status: ImportStatus = ImportStatus.IN_PROGRESS
    error: Optional[str] = None

    @computed_field
    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.imported / self.total


class ImportResult(BaseModel):
    imported: int
    total: int
    status: ImportStatus
    message: str

# src/batch/models.py — v2
"""Batch models: DataFile, ScanResult."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

SourceDomain = Literal["biomarker", "body_comp", "activity"]


class DataFile(BaseModel):
    """A discovered source: one report file or one activity export folder."""

    path: str
    name: str
    domain: SourceDomain
    format: str
    size_bytes: int = 0
    is_folder: bool = False
    tracker: str | None = None


class ScanResult(BaseModel):
    """Everything found under the data root, grouped by domain."""

    data_root: str
    bloodwork: list[DataFile] = Field(default_factory=list)
    body_scans: list[DataFile] = Field(default_factory=list)
    activity: list[DataFile] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.bloodwork) + len(self.body_scans) + len(self.activity)

    def all_files(self) -> list[DataFile]:
        return [*self.bloodwork, *self.body_scans, *self.activity]

# src/batch/scanner.py — v3
"""Source discovery under the data root.

Expected layout::

    <data_root>/
        Bloodwork/           lab reports (.txt/.md, or .pdf with a decoder)
        Body Scan/           DEXA / composition reports
        Activity/<tracker>/  wearable export folders (e.g. Activity/Whoop/)
        Activity/*.csv       plain daily activity files

Dot-files and dot-directories are ignored. Missing sub-folders simply
contribute nothing. Tracker folders holding neither a Whoop export nor
plain activity CSV files are logged and skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from healthfacts.batch.models import DataFile, ScanResult, SourceDomain
from healthfacts.extraction.activity_parser import (
    GENERIC_TRACKER,
    generic_csv_files,
    is_generic_activity_csv,
    is_whoop_folder,
)

if TYPE_CHECKING:
    from healthfacts.config.settings import Settings

logger = logging.getLogger(__name__)

BLOODWORK_DIR = "Bloodwork"
BODY_SCAN_DIR = "Body Scan"
ACTIVITY_DIR = "Activity"

# Supported report extensions mapped to format names
SUPPORTED_FORMATS: dict[str, str] = {
    ".txt": "txt",
    ".text": "txt",
    ".md": "md",
    ".pdf": "pdf",
}


class SourceScanner:
    """Discover report files and activity exports under a data root."""

    def __init__(
        self,
        data_root: str | Path | None = None,
        settings: Settings | None = None,
    ) -> None:
        if data_root is None:
            data_root = settings.data_root if settings is not None else "./data"
        self._root = Path(data_root).expanduser()

    @property
    def data_root(self) -> Path:
        return self._root

    def scan(self) -> ScanResult:
        """List every source, sorted by name within each domain."""
        result = ScanResult(
            data_root=str(self._root.resolve()),
            bloodwork=self._scan_reports(self._root / BLOODWORK_DIR, "biomarker"),
            body_scans=self._scan_reports(self._root / BODY_SCAN_DIR, "body_comp"),
            activity=self._scan_activity(self._root / ACTIVITY_DIR),
        )
        logger.info(
            "Scanned %s: %d bloodwork, %d body scans, %d activity exports",
            self._root, len(result.bloodwork), len(result.body_scans), len(result.activity),
        )
        return result

    def _scan_reports(self, folder: Path, domain: SourceDomain) -> list[DataFile]:
        if not folder.is_dir():
            logger.debug("No %s folder at %s", domain, folder)
            return []
        files: list[DataFile] = []
        for path in sorted(folder.iterdir()):
            if path.name.startswith(".") or not path.is_file():
                continue
            fmt = SUPPORTED_FORMATS.get(path.suffix.lower())
            if fmt is None:
                continue
            files.append(DataFile(
                path=str(path.resolve()),
                name=path.name,
                domain=domain,
                format=fmt,
                size_bytes=path.stat().st_size,
            ))
        return files

    def _scan_activity(self, folder: Path) -> list[DataFile]:
        if not folder.is_dir():
            return []
        exports: list[DataFile] = []
        for path in sorted(folder.iterdir()):
            if path.name.startswith("."):
                continue
            if path.is_file():
                if is_generic_activity_csv(path):
                    exports.append(DataFile(
                        path=str(path.resolve()),
                        name=path.name,
                        domain="activity",
                        format="csv",
                        size_bytes=path.stat().st_size,
                        tracker=GENERIC_TRACKER,
                    ))
                continue
            if is_whoop_folder(path):
                tracker = "whoop"
            elif generic_csv_files(path):
                tracker = path.name.lower()
            else:
                logger.warning("Unsupported activity export skipped: %s", path)
                continue
            exports.append(DataFile(
                path=str(path.resolve()),
                name=path.name,
                domain="activity",
                format="csv-folder",
                is_folder=True,
                tracker=tracker,
            ))
        return exports

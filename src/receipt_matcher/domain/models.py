from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
PDF_MIME_TYPE = "application/pdf"

STATUS_PROCESSED = "processed"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class DriveFile:
    id: str
    name: str
    mime_type: str
    parents: Tuple[str, ...] = ()

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> DriveFile:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            mime_type=str(data.get("mimeType") or ""),
            parents=tuple(str(p) for p in data.get("parents") or ()),
        )

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME_TYPE


@dataclass(frozen=True)
class ParsedReceipt:
    vendor: str
    job_name: str
    amount: Optional[Decimal]
    date: Optional[date]

    @property
    def is_actionable(self) -> bool:
        """True when there is a non-zero amount and a real calendar date."""
        return bool(self.amount) and self.date is not None


@dataclass
class FileOutcome:
    file_name: str
    status: str
    detail: str = ""
    purchase_id: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "status": self.status,
            "detail": self.detail,
            "purchase_id": self.purchase_id,
        }


@dataclass
class RunSummary:
    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: List[FileOutcome] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def processed(self) -> int:
        return self.count(STATUS_PROCESSED)

    @property
    def skipped(self) -> int:
        return self.count(STATUS_SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(STATUS_FAILED)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "files": [o.as_dict() for o in self.outcomes],
        }

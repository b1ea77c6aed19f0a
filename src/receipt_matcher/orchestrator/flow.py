"""Per-run orchestration: Drive receipts in, QuickBooks purchases updated."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, List, Optional

from ..config import MatcherConfig
from ..domain.filename import parse_receipt_filename
from ..domain.matching import find_match, query_window
from ..domain.models import (
    PDF_MIME_TYPE,
    STATUS_FAILED,
    STATUS_PROCESSED,
    STATUS_SKIPPED,
    DriveFile,
    FileOutcome,
    RunSummary,
)
from ..domain.mutation import mark_billable_taxable
from ..drive.client import DriveClient
from ..logging import get_logger
from ..quickbooks.client import QuickBooksClient

LOG = get_logger("orchestrator-flow")


def build_clients(config: MatcherConfig) -> tuple[DriveClient, QuickBooksClient]:
    """Create the Drive and QuickBooks clients described by config."""
    drive = DriveClient.from_credentials(
        config.google_client_id,
        config.google_client_secret,
        config.google_refresh_token,
        timeout=config.http_timeout,
    )
    ledger = QuickBooksClient.from_credentials(
        config.qbo_client_id,
        config.qbo_client_secret,
        config.qbo_refresh_token,
        config.qbo_realm_id,
        environment=config.qbo_environment,
        timeout=config.http_timeout,
    )
    return drive, ledger


class ReceiptMatcher:
    """Matches Drive receipt PDFs to QuickBooks purchases.

    `drive` and `ledger` are duck-typed collaborators (DriveClient and
    QuickBooksClient in production, fakes in tests). Only one run may be
    active at a time; an overlapping call to run_once returns None.
    """

    def __init__(self, config: MatcherConfig, drive: Any, ledger: Any) -> None:
        self.config = config
        self.drive = drive
        self.ledger = ledger
        self._run_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: MatcherConfig) -> ReceiptMatcher:
        drive, ledger = build_clients(config)
        return cls(config, drive, ledger)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def resolve_processed_folder(self) -> str:
        folder_id = self.drive.get_or_create_folder(
            self.config.master_folder_id,
            self.config.processed_folder_name,
        )
        LOG.info(f"Processed folder '{self.config.processed_folder_name}' -> id={folder_id}")
        return folder_id

    def list_receipts(self, processed_folder_id: str) -> List[DriveFile]:
        """PDFs directly under the master folder plus one level of subfolders."""
        direct = self.drive.list_children(self.config.master_folder_id)
        found: List[DriveFile] = [f for f in direct if f.is_pdf]
        for folder in direct:
            if not folder.is_folder or folder.id == processed_folder_id:
                continue
            found.extend(
                f for f in self.drive.list_children(folder.id, mime_type=PDF_MIME_TYPE) if f.is_pdf
            )
        return found

    # ------------------------------------------------------------------
    # Per-file pipeline
    # ------------------------------------------------------------------
    def process_file(self, file: DriveFile, *, access_token: str, processed_folder_id: str) -> FileOutcome:
        parsed = parse_receipt_filename(file.name)
        if parsed is None or not parsed.is_actionable:
            LOG.info(f"Skipping (bad filename): {file.name}")
            return FileOutcome(file.name, STATUS_SKIPPED, "unparseable filename")

        LOG.info(
            f"Processing: {file.name} (vendor={parsed.vendor}, job={parsed.job_name}, "
            f"date={parsed.date.isoformat()}, amount={parsed.amount})"
        )

        content = self.drive.download_content(file.id)
        LOG.info(f"Downloaded {len(content)} byte(s): {file.name}")

        start, end = query_window(parsed.date, self.config.date_window_days)
        candidates = self.ledger.query_purchases(access_token, start, end, parsed.amount)
        match = find_match(
            parsed,
            candidates,
            self.config.date_window_days,
            allow_fallback=self.config.allow_out_of_window_match,
        )
        if not match:
            LOG.info(f"No QBO match for {file.name}")
            return FileOutcome(file.name, STATUS_SKIPPED, "no matching purchase")
        purchase_id = str(match.get("Id"))

        self.ledger.upload_attachment(
            access_token,
            purchase_id,
            content,
            file.name,
            content_type=file.mime_type or PDF_MIME_TYPE,
        )
        LOG.info(f"Attached to Purchase {purchase_id}")

        updated = mark_billable_taxable(
            match,
            parsed.job_name,
            self.config.job_map,
            tax_code=self.config.tax_code,
        )
        if self.ledger.update_purchase(access_token, updated):
            LOG.info(f"Updated billable/taxable for {purchase_id}")
        else:
            LOG.warning(f"Purchase update for {purchase_id} returned no Purchase body")

        self.drive.move_file(file.id, file.parents, processed_folder_id)
        LOG.info(f"Moved to Processed: {file.name}")
        return FileOutcome(file.name, STATUS_PROCESSED, "attached, updated and moved", purchase_id)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------
    def _run(self) -> RunSummary:
        summary = RunSummary(started_at=datetime.now())
        processed_folder_id = self.resolve_processed_folder()

        receipts = self.list_receipts(processed_folder_id)
        if not receipts:
            LOG.info("No PDFs found.")
            summary.finished_at = datetime.now()
            return summary
        LOG.info(f"Found {len(receipts)} receipt PDF(s) to examine")

        access_token = self.ledger.get_access_token()

        for file in receipts:
            try:
                outcome = self.process_file(
                    file,
                    access_token=access_token,
                    processed_folder_id=processed_folder_id,
                )
            except Exception as exc:
                LOG.exception(f"Error on file {file.name}: {exc}")
                outcome = FileOutcome(file.name, STATUS_FAILED, str(exc))
            summary.outcomes.append(outcome)

        summary.finished_at = datetime.now()
        LOG.info(
            f"Run finished: {summary.processed} processed, {summary.skipped} skipped, "
            f"{summary.failed} failed"
        )
        return summary

    def run_once(self) -> Optional[RunSummary]:
        """Run a full pass; returns None if another run is still active."""
        if not self._run_lock.acquire(blocking=False):
            LOG.warning("Previous run still in progress; skipping this run")
            return None
        try:
            return self._run()
        finally:
            self._run_lock.release()

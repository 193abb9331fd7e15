from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.flow_logging import flow_info
from app.schemas.tracking import TrackingRecord
from app.services.notification_service import NotificationService
from app.services.searates_client import fetch_tracking
from app.services.shipment_tracking_repository import (
    ShipmentLocation,
    ShipmentTrackingRepository,
    normalize_container_no,
)
from app.services.tracking_change_detection import changed_fields
from app.services.tracking_errors import (
    ConfigurationError,
    InvalidInputError,
    ProviderQuotaExceededError,
    StoreError,
    TrackingError,
)

logger = logging.getLogger(__name__)

TrackingFetcher = Callable[[str], TrackingRecord]


@dataclass
class RefreshOutcome:
    container_no: str
    record: TrackingRecord
    matched: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class BatchRefreshResult:
    container_no: str
    outcome: str
    matched: int = 0
    updated: int = 0
    failed: int = 0
    error: str | None = None


@dataclass
class BatchRefreshSummary:
    results: list[BatchRefreshResult] = field(default_factory=list)
    stopped_reason: str | None = None

    def count(self, outcome: str) -> int:
        return sum(1 for result in self.results if result.outcome == outcome)


class ShipmentRefreshService:
    """
    Refreshes the tracking state of one container end to end:
    fetch -> locate -> compare -> merge -> notify.

    Each call is independent. Provider failures propagate before the store is
    touched; store and notification failures are contained per shipment so the
    fetched record is always returned.
    """

    def __init__(self, db: Session, fetcher: TrackingFetcher | None = None):
        self.db = db
        self.fetcher = fetcher or fetch_tracking
        self.repository = ShipmentTrackingRepository(db)
        self.notifications = NotificationService(db)

    def refresh(self, container_no: str | None) -> TrackingRecord:
        return self.refresh_with_outcome(container_no).record

    def refresh_with_outcome(self, container_no: str | None) -> RefreshOutcome:
        number = normalize_container_no(container_no)
        if not number:
            raise InvalidInputError(message="Container number is required")

        record = self.fetcher(number)
        outcome = RefreshOutcome(container_no=number, record=record)

        try:
            matches = self.repository.find_shipments_by_container(number)
        except StoreError as exc:
            self.db.rollback()
            logger.warning("tracking_locate_failed container=%s error=%s", number, exc.__cause__ or exc)
            outcome.failed += 1
            outcome.errors.append(exc.message)
            return outcome

        outcome.matched = len(matches)
        if not matches:
            flow_info(logger, "tracking_no_shipments container=%s", number, category="tracking")
            return outcome

        for location in matches:
            try:
                updated = self._reconcile(number, location, record)
            except StoreError as exc:
                self.db.rollback()
                logger.warning(
                    "tracking_store_failed container=%s po_number=%s shipment_id=%s error=%s",
                    number,
                    location.po_number,
                    location.shipment_id,
                    exc.__cause__ or exc,
                )
                outcome.failed += 1
                outcome.errors.append(exc.message)
                continue

            if updated:
                outcome.updated += 1
                self.notifications.emit(
                    number,
                    record.status,
                    record.last_event_status,
                    record.last_event_location,
                )
                self._commit_notification(number)
            else:
                outcome.unchanged += 1

        return outcome

    def _reconcile(self, container_no: str, location: ShipmentLocation, record: TrackingRecord) -> bool:
        latest = self.repository.latest_tracking_record(location.shipment_id)
        diff = changed_fields(latest, record)
        if latest is not None and not diff:
            flow_info(
                logger,
                "tracking_unchanged container=%s shipment_id=%s",
                container_no,
                location.shipment_id,
                category="tracking",
            )
            return False

        result = self.repository.apply_update(
            location.order_id,
            container_no,
            record,
            shipment_id=location.shipment_id,
        )
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(message="Failed to save tracking update.") from exc

        logger.info(
            "tracking_updated container=%s po_number=%s shipment_id=%s matched=%s modified=%s status_updated=%s fields=%s",
            container_no,
            location.po_number,
            location.shipment_id,
            result.matched,
            result.modified,
            result.status_updated,
            ",".join(diff),
        )
        return result.modified > 0

    def _commit_notification(self, container_no: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("tracking_notification_failed container=%s error=%s", container_no, exc)

    def refresh_all(self, container_numbers: list[str] | None = None) -> BatchRefreshSummary:
        """
        Refresh every live container one after another.
        Quota and configuration errors stop the batch; the rest are reported
        as skipped. Any other provider error only fails its own container.
        """
        if container_numbers is None:
            container_numbers = self.repository.live_container_numbers(settings.TRACKING_LIVE_STATUS)

        summary = BatchRefreshSummary()
        pending = list(dict.fromkeys(normalize_container_no(n) for n in container_numbers))
        for index, number in enumerate(pending):
            try:
                outcome = self.refresh_with_outcome(number)
            except (ProviderQuotaExceededError, ConfigurationError) as exc:
                logger.warning("tracking_batch_stopped container=%s error=%s", number, exc.message)
                summary.stopped_reason = exc.message
                summary.results.append(
                    BatchRefreshResult(container_no=number, outcome="failed", error=exc.message)
                )
                summary.results.extend(
                    BatchRefreshResult(container_no=rest, outcome="skipped")
                    for rest in pending[index + 1:]
                )
                break
            except TrackingError as exc:
                logger.warning("tracking_batch_container_failed container=%s error=%s", number, exc.message)
                summary.results.append(
                    BatchRefreshResult(container_no=number, outcome="failed", error=exc.message)
                )
                continue

            summary.results.append(
                BatchRefreshResult(
                    container_no=number,
                    outcome="failed" if outcome.failed else "refreshed",
                    matched=outcome.matched,
                    updated=outcome.updated,
                    failed=outcome.failed,
                    error="; ".join(outcome.errors) or None,
                )
            )
        return summary

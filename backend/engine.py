# Alert engine - wires evaluation, dedup, lifecycle, notification and scheduling
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import alerts
from logic import DEFAULT_THRESHOLDS, AlertThresholds, evaluate_clinic
from models import SUBSCRIPTION_EXPIRED, Alert, Clinic
from notifier import Notifier
from scheduler import DEFAULT_INTERVAL_SECONDS, PeriodicScheduler
from store import AlertStore, StoreError, TenantStore

logger = logging.getLogger(__name__)


class AlertOperationError(Exception):
    """Generic 'operation failed' signal for store failures behind a public operation."""


class AlertEngine:
    """
    Long-lived alert service. Built once at application startup and handed to
    consumers; evaluation passes and lifecycle calls share one lock so they
    never interleave mid-mutation.
    """

    def __init__(
        self,
        tenant_store: TenantStore,
        alert_store: Optional[AlertStore] = None,
        notifier: Optional[Notifier] = None,
        *,
        thresholds: AlertThresholds = DEFAULT_THRESHOLDS,
        recency_window: timedelta = alerts.RECENCY_WINDOW,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.tenants = tenant_store
        self.alert_store = alert_store if alert_store is not None else AlertStore()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.notifier = notifier if notifier is not None else Notifier(tenant_store, clock=self._clock)
        self.thresholds = thresholds
        self.recency_window = recency_window
        self._lock = threading.RLock()
        self.scheduler = PeriodicScheduler(self._run_pass, interval=interval)

    # ------------------------------------------------------------------
    # Lifecycle of the engine itself
    # ------------------------------------------------------------------
    def initialize_alerts_table(self) -> bool:
        with self._lock:
            return self.alert_store.initialize()

    def start(self) -> bool:
        """Run one pass immediately, then every interval. No-op when already running."""
        return self.scheduler.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self.scheduler.stop(timeout)

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    def now(self) -> datetime:
        return self._clock()

    def reset(self, reseed: Optional[Callable[[TenantStore], None]] = None) -> None:
        """Drop all alerts and toasts (demo reset), optionally reseeding the tenants."""
        with self._lock:
            self.alert_store.clear()
            self.notifier.clear()
            if reseed is not None:
                reseed(self.tenants)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------
    def check_all_clinics(self) -> Dict[str, int]:
        """Manual trigger: one full pass over active clinics, serialized with scheduled passes."""
        return self.scheduler.run_once()

    def _run_pass(self) -> Dict[str, int]:
        summary = {
            "clinicsChecked": 0,
            "alertsCreated": 0,
            "alertsUpdated": 0,
            "trialsExpired": 0,
            "failures": 0,
            "notificationFailures": 0,
        }
        with self._lock:
            now = self._clock()
            retried = self.notifier.retry_pending()
            if retried:
                logger.info("Delivered %d held-back alert notification(s)", retried)
            try:
                clinics = self.tenants.list_active_clinics()
            except StoreError as exc:
                logger.exception("Error loading clinics for alert check")
                raise AlertOperationError("Operation failed") from exc

            for clinic in clinics:
                try:
                    self._check_clinic(clinic, now, summary)
                except StoreError:
                    summary["failures"] += 1
                    logger.exception("Error checking alerts for clinic %s", clinic.id)
                summary["clinicsChecked"] += 1

        logger.info(
            "Alert check complete: %d clinics, %d created, %d updated, %d trials expired",
            summary["clinicsChecked"],
            summary["alertsCreated"],
            summary["alertsUpdated"],
            summary["trialsExpired"],
        )
        return summary

    def _check_clinic(self, clinic: Clinic, now: datetime, summary: Dict[str, int]) -> None:
        evaluation = evaluate_clinic(clinic, now, self.thresholds)

        if evaluation.expire_trial:
            self.tenants.update_clinic(clinic.id, subscriptionStatus=SUBSCRIPTION_EXPIRED, isActive=False)
            summary["trialsExpired"] += 1
            logger.info("Trial expired for clinic %s; clinic deactivated", clinic.id)

        for candidate in evaluation.candidates:
            alert, created = alerts.reconcile_alert(self.alert_store, candidate, now, self.recency_window)
            summary["alertsCreated" if created else "alertsUpdated"] += 1
            try:
                self.notifier.notify(alert, created)
            except StoreError:
                # the alert stands; the notifier re-delivers it on the next pass
                summary["notificationFailures"] += 1
                logger.exception("Notification failed for alert %s", alert.id)

    # ------------------------------------------------------------------
    # Alert queries and lifecycle
    # ------------------------------------------------------------------
    def get_all_active_alerts(self, clinic_id: Optional[str] = None, alert_type: Optional[str] = None) -> List[Alert]:
        with self._lock:
            try:
                return alerts.list_active_alerts(self.alert_store, clinic_id, alert_type)
            except StoreError as exc:
                logger.exception("Error loading active alerts")
                raise AlertOperationError("Operation failed") from exc

    def get_clinic_alerts(self, clinic_id: str, active_only: bool = True) -> List[Alert]:
        with self._lock:
            try:
                return alerts.get_clinic_alerts(self.alert_store, clinic_id, active_only)
            except StoreError as exc:
                logger.exception("Error loading alerts for clinic %s", clinic_id)
                raise AlertOperationError("Operation failed") from exc

    def get_alert_stats(self) -> Dict:
        with self._lock:
            try:
                return alerts.get_alert_stats(self.alert_store)
            except StoreError as exc:
                logger.exception("Error computing alert stats")
                raise AlertOperationError("Operation failed") from exc

    def acknowledge_alert(self, alert_id: str) -> Alert:
        """Raises alerts.AlertNotFoundError for unknown ids."""
        with self._lock:
            try:
                return alerts.acknowledge_alert(self.alert_store, self.tenants, alert_id, self._clock())
            except StoreError as exc:
                logger.exception("Error acknowledging alert %s", alert_id)
                raise AlertOperationError("Operation failed") from exc

    def dismiss_alert(self, alert_id: str) -> Alert:
        """Raises alerts.AlertNotFoundError for unknown ids."""
        with self._lock:
            try:
                return alerts.dismiss_alert(self.alert_store, self.tenants, alert_id, self._clock())
            except StoreError as exc:
                logger.exception("Error dismissing alert %s", alert_id)
                raise AlertOperationError("Operation failed") from exc

    def clinic_name(self, clinic_id: str) -> str:
        clinic = self.tenants.find_clinic_by_id(clinic_id)
        return clinic.name if clinic else "Unknown Clinic"

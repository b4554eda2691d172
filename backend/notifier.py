# Notification dispatch - toast feed, alert_created audit events, mock email
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional

from models import ALERT_CRITICAL, EVENT_ALERT_CREATED, Alert, Clinic, UsageEvent
from store import StoreError, TenantStore

logger = logging.getLogger(__name__)

CRITICAL_TOAST_MS = 8000
WARNING_TOAST_MS = 6000

EmailSender = Callable[[Alert, Clinic], None]


def toast_duration_ms(alert_type: str) -> int:
    """Critical alerts stay on screen longer than warnings"""
    return CRITICAL_TOAST_MS if alert_type == ALERT_CRITICAL else WARNING_TOAST_MS


def send_mock_email(alert: Alert, clinic: Clinic) -> None:
    """Stand-in for an email provider: only logs what would be sent."""
    logger.info(
        "Mock email notification to=%s subject=%r type=%s message=%r",
        clinic.email,
        alert.title,
        alert.type,
        alert.message,
    )


class Notifier:
    """
    Observes newly created alerts and fans them out to the toast feed, the
    usage audit log and a fire-and-forget email stub. Merges are ignored.

    The audit event is written first. When that write fails the alert is held
    back (no toast, no email) and re-delivered by `retry_pending()`.
    """

    def __init__(
        self,
        tenant_store: TenantStore,
        *,
        email_sender: Optional[EmailSender] = None,
        email_delay_seconds: float = 1.0,
        toast_history: int = 50,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._tenants = tenant_store
        self._email_sender = email_sender or send_mock_email
        self._email_delay = max(0.0, email_delay_seconds)
        self._toasts: Deque[Dict] = deque(maxlen=max(1, toast_history))
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._email_threads: List[threading.Thread] = []
        self._email_lock = threading.Lock()
        self._pending_audit: List[Alert] = []

    def notify(self, alert: Alert, is_new: bool) -> None:
        """
        Fan out a newly created alert. Raises StoreError when the audit write
        fails; the alert is then queued for `retry_pending()`.
        """
        if not is_new:
            return
        try:
            self._log_created(alert)
        except StoreError:
            self._pending_audit.append(alert)
            raise
        self._announce(alert)

    def retry_pending(self) -> int:
        """
        Write the missing alert_created events for alerts held back by a failed
        audit write, then announce the ones still active. Stops at the first
        failure and keeps the rest queued. Returns the number delivered.
        """
        delivered = 0
        while self._pending_audit:
            alert = self._pending_audit[0]
            try:
                self._log_created(alert)
            except StoreError:
                logger.warning(
                    "Audit log still unavailable; %d alert notification(s) pending",
                    len(self._pending_audit),
                )
                break
            self._pending_audit.pop(0)
            if alert.is_active:
                self._announce(alert)
            delivered += 1
        return delivered

    @property
    def pending_count(self) -> int:
        return len(self._pending_audit)

    def recent_toasts(self, limit: int = 10) -> List[Dict]:
        """Most recent toasts first."""
        return list(reversed(self._toasts))[:limit]

    def clear(self) -> None:
        self._toasts.clear()
        self._pending_audit.clear()

    def wait_for_emails(self, timeout: Optional[float] = None) -> None:
        """Block until pending email dispatches finish. Used on shutdown and in tests."""
        with self._email_lock:
            threads = list(self._email_threads)
        for thread in threads:
            thread.join(timeout)
        with self._email_lock:
            self._email_threads = [t for t in self._email_threads if t.is_alive()]

    def _announce(self, alert: Alert) -> None:
        self._push_toast(alert)
        self._dispatch_email(alert)

    def _push_toast(self, alert: Alert) -> None:
        self._toasts.append({
            "alertId": alert.id,
            "clinicId": alert.clinicId,
            "severity": "error",
            "type": alert.type,
            "message": alert.message,
            "durationMs": toast_duration_ms(alert.type),
            "timestamp": self._clock().isoformat(),
        })

    def _log_created(self, alert: Alert) -> None:
        self._tenants.append_usage_event(UsageEvent(
            clinicId=alert.clinicId,
            action=EVENT_ALERT_CREATED,
            timestamp=self._clock(),
            details={
                "alertType": alert.type,
                "alertCategory": alert.category,
                "alertTitle": alert.title,
            },
        ))

    def _dispatch_email(self, alert: Alert) -> None:
        clinic = self._tenants.find_clinic_by_id(alert.clinicId)
        if clinic is None or not clinic.email:
            logger.debug("No email recipient for alert %s", alert.id)
            return
        thread = threading.Thread(
            target=self._send_email,
            args=(alert, clinic),
            name=f"alert-email-{alert.id}",
            daemon=True,
        )
        with self._email_lock:
            self._email_threads = [t for t in self._email_threads if t.is_alive()]
            self._email_threads.append(thread)
            thread.start()

    def _send_email(self, alert: Alert, clinic: Clinic) -> None:
        try:
            if self._email_delay:
                time.sleep(self._email_delay)
            self._email_sender(alert, clinic)
        except Exception:
            logger.exception("Email notification failed for alert %s", alert.id)

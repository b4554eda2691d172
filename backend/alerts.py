# Alert records - deduplication within the recency window and lifecycle transitions
from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from models import (
    ALERT_CRITICAL,
    ALERT_WARNING,
    EVENT_ALERT_ACKNOWLEDGED,
    EVENT_ALERT_DISMISSED,
    STATUS_RESOLVED,
    Alert,
    AlertCandidate,
    UsageEvent,
)
from store import AlertStore, TenantStore

RECENCY_WINDOW = timedelta(hours=24)


class AlertNotFoundError(Exception):
    """Raised when acknowledging or dismissing an alert id that does not exist."""

    def __init__(self, alert_id: str):
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id


def _new_alert_id() -> str:
    return f"alert_{uuid.uuid4().hex}"


def reconcile_alert(
    alert_store: AlertStore,
    candidate: AlertCandidate,
    now: datetime,
    recency_window: timedelta = RECENCY_WINDOW,
) -> Tuple[Alert, bool]:
    """
    Merge a candidate into the matching active alert created within the
    recency window, or store a new alert.

    Returns (alert, created). A merge refreshes the content, bumps `count`
    and `updatedAt`, and leaves createdAt/acknowledged/status untouched.
    Resolved alerts are never matched.
    """
    existing = alert_store.find_recent_active(candidate.key, now - recency_window)
    if existing is not None:
        existing.title = candidate.title
        existing.message = candidate.message
        existing.action = candidate.action
        existing.data = dict(candidate.data)
        existing.updatedAt = now
        existing.count = (existing.count or 1) + 1
        return existing, False

    alert = Alert(
        id=_new_alert_id(),
        key=candidate.key,
        clinicId=candidate.clinicId,
        type=candidate.type,
        category=candidate.category,
        title=candidate.title,
        message=candidate.message,
        action=candidate.action,
        data=dict(candidate.data),
        createdAt=now,
        updatedAt=now,
    )
    alert_store.add(alert)
    return alert, True


def _lifecycle_event(alert: Alert, action: str, now: datetime) -> UsageEvent:
    return UsageEvent(
        clinicId=alert.clinicId,
        action=action,
        timestamp=now,
        details={
            "alertId": alert.id,
            "alertType": alert.type,
            "alertCategory": alert.category,
        },
    )


def _require_alert(alert_store: AlertStore, alert_id: str) -> Alert:
    alert = alert_store.get(alert_id)
    if alert is None:
        raise AlertNotFoundError(alert_id)
    return alert


def acknowledge_alert(
    alert_store: AlertStore,
    tenant_store: TenantStore,
    alert_id: str,
    now: datetime,
) -> Alert:
    """Mark an alert acknowledged. Status is unchanged; repeat calls are no-ops."""
    alert = _require_alert(alert_store, alert_id)
    if alert.acknowledged:
        return alert

    # event before state change: a failed write leaves the alert as it was
    tenant_store.append_usage_event(_lifecycle_event(alert, EVENT_ALERT_ACKNOWLEDGED, now))
    alert.acknowledged = True
    alert.acknowledgedAt = now
    return alert


def dismiss_alert(
    alert_store: AlertStore,
    tenant_store: TenantStore,
    alert_id: str,
    now: datetime,
) -> Alert:
    """Resolve an alert. Resolving an already resolved alert is a no-op."""
    alert = _require_alert(alert_store, alert_id)
    if not alert.is_active:
        return alert

    tenant_store.append_usage_event(_lifecycle_event(alert, EVENT_ALERT_DISMISSED, now))
    alert.status = STATUS_RESOLVED
    alert.resolvedAt = now
    return alert


def _newest_first(alerts: List[Alert]) -> List[Alert]:
    return sorted(alerts, key=lambda a: a.createdAt, reverse=True)


def list_active_alerts(
    alert_store: AlertStore,
    clinic_id: Optional[str] = None,
    alert_type: Optional[str] = None,
) -> List[Alert]:
    """Active alerts, newest first. alert_type 'all' or None means no type filter."""
    alerts = [
        a
        for a in alert_store.list_alerts()
        if a.is_active
        and (clinic_id is None or a.clinicId == clinic_id)
        and (alert_type in (None, "all") or a.type == alert_type)
    ]
    return _newest_first(alerts)


def get_clinic_alerts(alert_store: AlertStore, clinic_id: str, active_only: bool = True) -> List[Alert]:
    """A clinic's alerts, newest first, including resolved ones when active_only is False."""
    alerts = [
        a
        for a in alert_store.list_alerts()
        if a.clinicId == clinic_id and (a.is_active or not active_only)
    ]
    return _newest_first(alerts)


def get_alert_stats(alert_store: AlertStore) -> Dict:
    """Counts computed from the current alert set on every call."""
    alerts = alert_store.list_alerts()
    active = [a for a in alerts if a.is_active]
    types = Counter(a.type for a in active)
    return {
        "total": len(alerts),
        "active": len(active),
        "critical": types.get(ALERT_CRITICAL, 0),
        "warning": types.get(ALERT_WARNING, 0),
        "byCategory": dict(Counter(a.category for a in active)),
    }

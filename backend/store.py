# In-memory stores - tenants (clinics + usage log) and alerts
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from models import Alert, Clinic, UsageEvent

logger = logging.getLogger(__name__)

# Fields the alert engine or admin flows may change on a clinic
_MUTABLE_CLINIC_FIELDS = {
    "name",
    "email",
    "isActive",
    "reportsUsed",
    "reportsAllowed",
    "subscriptionStatus",
    "trialEndDate",
}


class StoreError(Exception):
    """Raised when a store read or write cannot be completed."""


class TenantStore:
    """Clinic records plus the append-only usage event log."""

    def __init__(self) -> None:
        self._clinics: Dict[str, Clinic] = {}
        self._usage_events: List[UsageEvent] = []

    def add_clinic(self, clinic: Clinic) -> Clinic:
        self._clinics[clinic.id] = clinic
        return clinic

    def list_clinics(self) -> List[Clinic]:
        return list(self._clinics.values())

    def list_active_clinics(self) -> List[Clinic]:
        return [c for c in list(self._clinics.values()) if c.isActive]

    def find_clinic_by_id(self, clinic_id: str) -> Optional[Clinic]:
        return self._clinics.get(clinic_id)

    def update_clinic(self, clinic_id: str, **fields) -> Optional[Clinic]:
        """Apply a partial update. Returns None if the clinic does not exist."""
        unknown = set(fields) - _MUTABLE_CLINIC_FIELDS
        if unknown:
            raise StoreError(f"Unknown clinic fields: {sorted(unknown)}")
        clinic = self._clinics.get(clinic_id)
        if clinic is None:
            return None
        for name, value in fields.items():
            setattr(clinic, name, value)
        return clinic

    def append_usage_event(self, event: UsageEvent) -> UsageEvent:
        self._usage_events.append(event)
        return event

    def list_usage_events(self, clinic_id: Optional[str] = None, limit: Optional[int] = None) -> List[UsageEvent]:
        """Usage events, most recent first."""
        events = [e for e in self._usage_events if clinic_id is None or e.clinicId == clinic_id]
        events.reverse()
        if limit is not None:
            events = events[:limit]
        return events

    def clear(self) -> None:
        self._clinics.clear()
        self._usage_events.clear()


class AlertStore:
    """Alert records keyed by their unique id."""

    def __init__(self) -> None:
        self._alerts: Optional[Dict[str, Alert]] = None

    def initialize(self) -> bool:
        """Create an empty alert collection if none exists. Returns True when created."""
        if self._alerts is not None:
            return False
        self._alerts = {}
        logger.info("Alert collection initialized")
        return True

    def _collection(self) -> Dict[str, Alert]:
        if self._alerts is None:
            self.initialize()
        return self._alerts

    def add(self, alert: Alert) -> Alert:
        alerts = self._collection()
        if alert.id in alerts:
            raise StoreError(f"Alert id already exists: {alert.id}")
        alerts[alert.id] = alert
        return alert

    def get(self, alert_id: str) -> Optional[Alert]:
        return self._collection().get(alert_id)

    def list_alerts(self) -> List[Alert]:
        return list(self._collection().values())

    def find_recent_active(self, key: str, since: datetime) -> Optional[Alert]:
        """Active alert with this composite key created strictly after `since`."""
        for alert in self._collection().values():
            if alert.key == key and alert.is_active and alert.createdAt > since:
                return alert
        return None

    def clear(self) -> None:
        self._alerts = {}

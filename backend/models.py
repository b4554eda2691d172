# Data models - clinics, alerts and the usage audit log
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

DEFAULT_REPORTS_ALLOWED = 10

# subscriptionStatus
SUBSCRIPTION_TRIAL = "trial"
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_EXPIRED = "expired"

# Alert.type
ALERT_WARNING = "warning"
ALERT_CRITICAL = "critical"
ALERT_TYPES = (ALERT_WARNING, ALERT_CRITICAL)

# Alert.category
CATEGORY_USAGE = "usage"
CATEGORY_TRIAL = "trial"

# Alert.status
STATUS_ACTIVE = "active"
STATUS_RESOLVED = "resolved"

# Alert.action
ACTION_PURCHASE_REPORTS = "purchase_reports"
ACTION_CONSIDER_PURCHASE = "consider_purchase"
ACTION_UPGRADE_SUBSCRIPTION = "upgrade_subscription"
ACTION_NONE = "none"

# UsageEvent.action
EVENT_ALERT_CREATED = "alert_created"
EVENT_ALERT_ACKNOWLEDGED = "alert_acknowledged"
EVENT_ALERT_DISMISSED = "alert_dismissed"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class Clinic:
    """Tenant account with a report quota and subscription state"""
    id: str
    name: str
    email: str = ""
    isActive: bool = True
    reportsUsed: int = 0
    reportsAllowed: int = DEFAULT_REPORTS_ALLOWED
    subscriptionStatus: str = SUBSCRIPTION_ACTIVE
    trialEndDate: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["trialEndDate"] = _iso(self.trialEndDate)
        return data


@dataclass
class AlertCandidate:
    """Pending alert produced by the threshold evaluator, not yet stored"""
    clinicId: str
    type: str
    category: str
    title: str
    message: str
    action: str = ACTION_NONE
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return alert_key(self.clinicId, self.category, self.type)


@dataclass
class ClinicEvaluation:
    """Result of evaluating one clinic: candidates plus the trial-expiry instruction"""
    clinicId: str
    candidates: List[AlertCandidate] = field(default_factory=list)
    expire_trial: bool = False


@dataclass
class Alert:
    """Stored alert record. `key` is the dedup lookup index, `id` is unique per record."""
    id: str
    key: str
    clinicId: str
    type: str
    category: str
    title: str
    message: str
    action: str
    createdAt: datetime
    updatedAt: datetime
    data: Dict[str, Any] = field(default_factory=dict)
    status: str = STATUS_ACTIVE
    acknowledged: bool = False
    count: int = 1
    acknowledgedAt: Optional[datetime] = None
    resolvedAt: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for name in ("createdAt", "updatedAt", "acknowledgedAt", "resolvedAt"):
            data[name] = _iso(getattr(self, name))
        return data


@dataclass(frozen=True)
class UsageEvent:
    """Audit log entry. Append-only."""
    clinicId: str
    action: str
    timestamp: datetime
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clinicId": self.clinicId,
            "action": self.action,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }


def alert_key(clinic_id: str, category: str, alert_type: str) -> str:
    """Deterministic composite key: clinicId_category_type."""
    return f"{clinic_id}_{category}_{alert_type}"

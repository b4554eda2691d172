# Business logic - threshold evaluation for clinic usage and trial alerts
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from models import (
    ACTION_CONSIDER_PURCHASE,
    ACTION_PURCHASE_REPORTS,
    ACTION_UPGRADE_SUBSCRIPTION,
    ALERT_CRITICAL,
    ALERT_WARNING,
    CATEGORY_TRIAL,
    CATEGORY_USAGE,
    DEFAULT_REPORTS_ALLOWED,
    SUBSCRIPTION_TRIAL,
    AlertCandidate,
    Clinic,
    ClinicEvaluation,
)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class AlertThresholds:
    warning: float = 0.8  # 80% usage
    critical: float = 1.0  # 100% usage
    trial_days: int = 7  # days left in trial


DEFAULT_THRESHOLDS = AlertThresholds()


def effective_reports_allowed(clinic: Clinic) -> int:
    """reportsAllowed with 0/unset treated as the default quota"""
    allowed = clinic.reportsAllowed or 0
    return allowed if allowed > 0 else DEFAULT_REPORTS_ALLOWED


def round_half_up(value: float) -> int:
    """Round .5 upwards (42.5 -> 43), unlike Python's banker's rounding"""
    return int(math.floor(value + 0.5))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_until(end: datetime, now: datetime) -> int:
    """Whole days left until `end`, rounded up. Zero or negative once passed."""
    delta = _as_utc(end) - _as_utc(now)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def check_clinic_usage(
    clinic: Clinic,
    thresholds: AlertThresholds = DEFAULT_THRESHOLDS,
) -> Optional[AlertCandidate]:
    """Critical at or above 100% of the quota, warning at or above 80%."""
    used = clinic.reportsUsed or 0
    allowed = effective_reports_allowed(clinic)
    usage_percentage = used / allowed

    if usage_percentage >= thresholds.critical:
        return AlertCandidate(
            clinicId=clinic.id,
            type=ALERT_CRITICAL,
            category=CATEGORY_USAGE,
            title="Report Limit Reached",
            message=f"Clinic {clinic.name} has used all {allowed} allocated reports.",
            action=ACTION_PURCHASE_REPORTS,
            data={"reportsUsed": used, "reportsAllowed": allowed},
        )

    if usage_percentage >= thresholds.warning:
        percentage = round_half_up(usage_percentage * 100)
        return AlertCandidate(
            clinicId=clinic.id,
            type=ALERT_WARNING,
            category=CATEGORY_USAGE,
            title="Report Limit Warning",
            message=f"Clinic {clinic.name} has used {percentage}% of their allocated reports.",
            action=ACTION_CONSIDER_PURCHASE,
            data={"reportsUsed": used, "reportsAllowed": allowed, "percentage": percentage},
        )

    return None


def check_trial_status(
    clinic: Clinic,
    now: datetime,
    thresholds: AlertThresholds = DEFAULT_THRESHOLDS,
) -> Optional[AlertCandidate]:
    """
    Trial checks apply only to clinics still on a trial with an end date.
    An expired trial yields a critical candidate; the caller must then
    transition the clinic to expired/inactive.
    """
    if clinic.subscriptionStatus != SUBSCRIPTION_TRIAL or clinic.trialEndDate is None:
        return None

    days_left = days_until(clinic.trialEndDate, now)
    trial_end = _as_utc(clinic.trialEndDate).isoformat()

    if days_left <= 0:
        return AlertCandidate(
            clinicId=clinic.id,
            type=ALERT_CRITICAL,
            category=CATEGORY_TRIAL,
            title="Trial Expired",
            message=f"Trial period for clinic {clinic.name} has expired.",
            action=ACTION_UPGRADE_SUBSCRIPTION,
            data={"trialEndDate": trial_end, "daysExpired": abs(days_left)},
        )

    if days_left <= thresholds.trial_days:
        plural = "s" if days_left > 1 else ""
        return AlertCandidate(
            clinicId=clinic.id,
            type=ALERT_WARNING,
            category=CATEGORY_TRIAL,
            title="Trial Ending Soon",
            message=f"Trial for clinic {clinic.name} will expire in {days_left} day{plural}.",
            action=ACTION_UPGRADE_SUBSCRIPTION,
            data={"trialEndDate": trial_end, "daysLeft": days_left},
        )

    return None


def evaluate_clinic(
    clinic: Clinic,
    now: datetime,
    thresholds: AlertThresholds = DEFAULT_THRESHOLDS,
) -> ClinicEvaluation:
    """Evaluate usage and trial independently. Does not mutate the clinic."""
    candidates: List[AlertCandidate] = []

    usage = check_clinic_usage(clinic, thresholds)
    if usage is not None:
        candidates.append(usage)

    trial = check_trial_status(clinic, now, thresholds)
    if trial is not None:
        candidates.append(trial)

    expire_trial = trial is not None and trial.type == ALERT_CRITICAL
    return ClinicEvaluation(clinicId=clinic.id, candidates=candidates, expire_trial=expire_trial)

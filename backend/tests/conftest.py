"""
Shared pytest fixtures for the clinic alerting tests.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from config import Settings
from engine import AlertEngine
from main import create_app
from models import SUBSCRIPTION_ACTIVE, SUBSCRIPTION_TRIAL, Clinic
from notifier import Notifier
from seed import seed_data
from store import AlertStore, StoreError, TenantStore

BASE_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_clinic(clinic_id="X1", **overrides) -> Clinic:
    """Clinic with no alert conditions unless overridden."""
    fields = dict(
        id=clinic_id,
        name=f"Clinic {clinic_id}",
        email=f"{clinic_id.lower()}@clinic.example",
        isActive=True,
        reportsUsed=0,
        reportsAllowed=10,
        subscriptionStatus=SUBSCRIPTION_ACTIVE,
        trialEndDate=None,
    )
    fields.update(overrides)
    return Clinic(**fields)


def make_trial_clinic(clinic_id, clock, days, **overrides) -> Clinic:
    """Trial clinic whose trial ends `days` from the clock's now (negative = past)."""
    fields = dict(subscriptionStatus=SUBSCRIPTION_TRIAL, trialEndDate=clock() + timedelta(days=days))
    fields.update(overrides)
    return make_clinic(clinic_id, **fields)


class FailingTenantStore(TenantStore):
    """Tenant store whose reads, trial updates or audit writes can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_listing = False
        self.fail_updates_for = set()
        self.failed_appends_left = 0

    def list_active_clinics(self):
        if self.fail_listing:
            raise StoreError("clinics unavailable")
        return super().list_active_clinics()

    def update_clinic(self, clinic_id, **fields):
        if clinic_id in self.fail_updates_for:
            raise StoreError("write failed")
        return super().update_clinic(clinic_id, **fields)

    def append_usage_event(self, event):
        if self.failed_appends_left:
            self.failed_appends_left -= 1
            raise StoreError("usage log unavailable")
        return super().append_usage_event(event)


class FailingAlertStore(AlertStore):
    """Alert store whose lookups and listings fail while `fail_reads` is set."""

    def __init__(self):
        super().__init__()
        self.fail_reads = False

    def get(self, alert_id):
        if self.fail_reads:
            raise StoreError("alerts unavailable")
        return super().get(alert_id)

    def list_alerts(self):
        if self.fail_reads:
            raise StoreError("alerts unavailable")
        return super().list_alerts()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tenants():
    return TenantStore()


@pytest.fixture
def sent_emails():
    """(alert, clinic) pairs handed to the email sender."""
    return []


@pytest.fixture
def notifier(tenants, clock, sent_emails):
    return Notifier(
        tenants,
        email_sender=lambda alert, clinic: sent_emails.append((alert, clinic)),
        email_delay_seconds=0,
        clock=clock,
    )


@pytest.fixture
def engine(tenants, notifier, clock):
    """Engine wired to the fake clock. The scheduler is never started here."""
    eng = AlertEngine(tenants, AlertStore(), notifier, clock=clock, interval=3600)
    eng.initialize_alerts_table()
    yield eng
    eng.stop(timeout=1)
    notifier.wait_for_emails(timeout=1)


@pytest.fixture
def seeded_engine(engine, clock):
    """Engine over the demo clinics C1-C6, seeded at the fake clock's time."""
    seed_data(engine.tenants, now=clock())
    return engine


@pytest.fixture
def client(seeded_engine):
    """FastAPI TestClient over the seeded engine (no lifespan, so no scheduler)."""
    app = create_app(engine=seeded_engine, settings=Settings(scheduler_enabled=False))
    return TestClient(app)


@pytest.fixture
def failing_engine(clock, sent_emails):
    """Engine over stores that tests can switch into failure modes."""
    tenants = FailingTenantStore()
    notifier = Notifier(
        tenants,
        email_sender=lambda alert, clinic: sent_emails.append((alert, clinic)),
        email_delay_seconds=0,
        clock=clock,
    )
    eng = AlertEngine(tenants, FailingAlertStore(), notifier, clock=clock, interval=3600)
    eng.initialize_alerts_table()
    yield eng
    eng.stop(timeout=1)
    notifier.wait_for_emails(timeout=1)

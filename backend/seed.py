# Seed data - demo clinics covering every alert path
from datetime import datetime, timedelta, timezone
from typing import Optional

from models import SUBSCRIPTION_ACTIVE, SUBSCRIPTION_TRIAL, Clinic
from store import TenantStore


def seed_data(tenant_store: TenantStore, now: Optional[datetime] = None):
    """Reset the tenant store to the demo clinics"""
    now = now or datetime.now(timezone.utc)
    tenant_store.clear()

    # C1: 40% usage, paid -> no alerts
    # C2: 80% usage -> warning/usage
    # C3: 10 of 10 used -> critical/usage
    # C4: trial ends in 3 days -> warning/trial
    # C5: trial ended yesterday, 90% usage -> critical/trial + warning/usage, then deactivated
    # C6: inactive -> never evaluated
    seeded = [
        Clinic(id="C1", name="Sunrise Family Clinic", email="admin@sunrise.example",
               reportsUsed=4, reportsAllowed=10, subscriptionStatus=SUBSCRIPTION_ACTIVE),
        Clinic(id="C2", name="Harbor Diagnostics", email="ops@harbor.example",
               reportsUsed=8, reportsAllowed=10, subscriptionStatus=SUBSCRIPTION_ACTIVE),
        Clinic(id="C3", name="Northside Imaging", email="it@northside.example",
               reportsUsed=10, reportsAllowed=10, subscriptionStatus=SUBSCRIPTION_ACTIVE),
        Clinic(id="C4", name="Lakeview Health", email="hello@lakeview.example",
               reportsUsed=2, reportsAllowed=10, subscriptionStatus=SUBSCRIPTION_TRIAL,
               trialEndDate=now + timedelta(days=3)),
        Clinic(id="C5", name="Pinecrest Medical", email="front@pinecrest.example",
               reportsUsed=9, reportsAllowed=10, subscriptionStatus=SUBSCRIPTION_TRIAL,
               trialEndDate=now - timedelta(days=1)),
        Clinic(id="C6", name="Old Town Clinic", email="", isActive=False,
               reportsUsed=12, reportsAllowed=10, subscriptionStatus=SUBSCRIPTION_ACTIVE),
    ]
    for clinic in seeded:
        tenant_store.add_clinic(clinic)

    print("Seed data initialized:")
    print(f"  - {len(seeded)} clinics: {[c.id for c in seeded]}")
    for clinic in seeded:
        trial = f", trialEndDate={clinic.trialEndDate.date()}" if clinic.trialEndDate else ""
        print(
            f"  - {clinic.id} {clinic.name}: {clinic.reportsUsed}/{clinic.reportsAllowed} reports, "
            f"{clinic.subscriptionStatus}, isActive={clinic.isActive}{trial}"
        )


if __name__ == "__main__":
    seed_data(TenantStore())

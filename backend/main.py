# Backend main entry point - clinic alerting API
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
load_dotenv()  # Load .env so DEMO_MODE / ALERT_* settings work for local runs
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from alerts import AlertNotFoundError
from config import Settings, is_demo_mode, load_settings
from engine import AlertEngine, AlertOperationError
from models import Alert, Clinic
from notifier import Notifier
from seed import seed_data
from store import AlertStore, TenantStore

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> AlertEngine:
    """Construct the stores, notifier and engine once for the process"""
    tenants = TenantStore()
    seed_data(tenants)
    notifier = Notifier(
        tenants,
        email_delay_seconds=settings.email_delay_seconds,
        toast_history=settings.toast_history,
    )
    engine = AlertEngine(
        tenants,
        AlertStore(),
        notifier,
        recency_window=timedelta(hours=settings.recency_hours),
        interval=settings.check_interval_seconds,
    )
    engine.initialize_alerts_table()
    return engine


# Request/Response models
class ClinicResponse(BaseModel):
    id: str
    name: str
    email: str
    isActive: bool
    reportsUsed: int
    reportsAllowed: int
    subscriptionStatus: str
    trialEndDate: Optional[datetime] = None


class AlertResponse(BaseModel):
    id: str
    clinicId: str
    clinicName: str
    type: str
    category: str
    title: str
    message: str
    action: str
    data: Dict[str, Any]
    status: str
    acknowledged: bool
    count: int
    createdAt: datetime
    updatedAt: datetime
    acknowledgedAt: Optional[datetime] = None
    resolvedAt: Optional[datetime] = None


class AlertStatsResponse(BaseModel):
    total: int
    active: int
    critical: int
    warning: int
    byCategory: Dict[str, int]


class SchedulerStatusResponse(BaseModel):
    running: bool
    intervalSeconds: float
    skippedTicks: int


def get_engine(request: Request) -> AlertEngine:
    return request.app.state.engine


def _clinic_response(clinic: Clinic) -> ClinicResponse:
    return ClinicResponse(
        id=clinic.id,
        name=clinic.name,
        email=clinic.email,
        isActive=clinic.isActive,
        reportsUsed=clinic.reportsUsed,
        reportsAllowed=clinic.reportsAllowed,
        subscriptionStatus=clinic.subscriptionStatus,
        trialEndDate=clinic.trialEndDate,
    )


def _alert_response(engine: AlertEngine, alert: Alert) -> AlertResponse:
    data = alert.to_dict()
    data.pop("key")
    return AlertResponse(clinicName=engine.clinic_name(alert.clinicId), **data)


def _scheduler_status(engine: AlertEngine) -> SchedulerStatusResponse:
    return SchedulerStatusResponse(
        running=engine.is_running,
        intervalSeconds=engine.scheduler.interval,
        skippedTicks=engine.scheduler.skipped_ticks,
    )


def create_app(engine: Optional[AlertEngine] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    engine = engine or build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.scheduler_enabled:
            app.state.engine.start()
        yield
        app.state.engine.stop(timeout=5)
        app.state.engine.notifier.wait_for_emails(timeout=5)

    app = FastAPI(title="Clinic Alerting API", lifespan=lifespan)
    app.state.engine = engine

    # Configure CORS - allow local dev and deployed frontend
    allowed_origins = [
        "http://localhost:5173",
        "http://localhost:5174",
    ]
    frontend_url = os.environ.get("FRONTEND_URL", "")
    if frontend_url:
        allowed_origins.append(frontend_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def read_root():
        return {"message": "Clinic Alerting API"}

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    @app.get("/clinics", response_model=List[ClinicResponse])
    def get_all_clinics(engine: AlertEngine = Depends(get_engine)):
        """Get all clinics"""
        return [_clinic_response(c) for c in engine.tenants.list_clinics()]

    @app.get("/clinics/{clinic_id}/alerts", response_model=List[AlertResponse])
    def get_clinic_alerts(
        clinic_id: str,
        activeOnly: bool = True,
        engine: AlertEngine = Depends(get_engine),
    ):
        """Alerts for one clinic, newest first. activeOnly=false includes resolved history."""
        if engine.tenants.find_clinic_by_id(clinic_id) is None:
            raise HTTPException(status_code=404, detail="Clinic not found")
        try:
            alerts = engine.get_clinic_alerts(clinic_id, active_only=activeOnly)
        except AlertOperationError:
            raise HTTPException(status_code=500, detail="Operation failed")
        return [_alert_response(engine, a) for a in alerts]

    @app.get("/alerts", response_model=List[AlertResponse])
    def get_active_alerts(
        clinicId: Optional[str] = None,
        alert_type: str = Query("all", alias="type", pattern="^(all|critical|warning)$"),
        engine: AlertEngine = Depends(get_engine),
    ):
        """Active alerts across clinics, newest first"""
        try:
            alerts = engine.get_all_active_alerts(clinic_id=clinicId, alert_type=alert_type)
        except AlertOperationError:
            raise HTTPException(status_code=500, detail="Operation failed")
        return [_alert_response(engine, a) for a in alerts]

    @app.get("/alerts/stats", response_model=AlertStatsResponse)
    def get_alert_stats(engine: AlertEngine = Depends(get_engine)):
        try:
            return engine.get_alert_stats()
        except AlertOperationError:
            raise HTTPException(status_code=500, detail="Operation failed")

    @app.post("/alerts/check")
    def check_all_clinics(engine: AlertEngine = Depends(get_engine)):
        """Manual trigger: evaluate every active clinic now"""
        try:
            summary = engine.check_all_clinics()
            stats = engine.get_alert_stats()
        except AlertOperationError:
            raise HTTPException(status_code=500, detail="Operation failed")
        return {"summary": summary, "stats": stats}

    @app.post("/alerts/{alert_id}/acknowledge", response_model=AlertResponse)
    def acknowledge_alert(alert_id: str, engine: AlertEngine = Depends(get_engine)):
        try:
            alert = engine.acknowledge_alert(alert_id)
        except AlertNotFoundError:
            raise HTTPException(status_code=404, detail="Alert not found")
        except AlertOperationError:
            raise HTTPException(status_code=500, detail="Operation failed")
        return _alert_response(engine, alert)

    @app.post("/alerts/{alert_id}/dismiss", response_model=AlertResponse)
    def dismiss_alert(alert_id: str, engine: AlertEngine = Depends(get_engine)):
        try:
            alert = engine.dismiss_alert(alert_id)
        except AlertNotFoundError:
            raise HTTPException(status_code=404, detail="Alert not found")
        except AlertOperationError:
            raise HTTPException(status_code=500, detail="Operation failed")
        return _alert_response(engine, alert)

    @app.get("/notifications")
    def get_notifications(limit: int = Query(10, ge=1, le=100), engine: AlertEngine = Depends(get_engine)):
        """Recent toast notifications, most recent first"""
        return engine.notifier.recent_toasts(limit)

    @app.get("/usage-events")
    def get_usage_events(
        clinicId: Optional[str] = None,
        limit: int = Query(20, ge=1, le=500),
        engine: AlertEngine = Depends(get_engine),
    ):
        """Alert audit log, most recent first"""
        return [e.to_dict() for e in engine.tenants.list_usage_events(clinicId, limit)]

    @app.get("/scheduler/status", response_model=SchedulerStatusResponse)
    def scheduler_status(engine: AlertEngine = Depends(get_engine)):
        return _scheduler_status(engine)

    @app.post("/scheduler/start", response_model=SchedulerStatusResponse)
    def scheduler_start(engine: AlertEngine = Depends(get_engine)):
        engine.start()
        return _scheduler_status(engine)

    @app.post("/scheduler/stop", response_model=SchedulerStatusResponse)
    def scheduler_stop(engine: AlertEngine = Depends(get_engine)):
        engine.stop()
        return _scheduler_status(engine)

    @app.get("/demo/status")
    def demo_status():
        """Returns whether demo mode is enabled. Only for frontend visibility gate."""
        return {"demoMode": is_demo_mode()}

    @app.post("/demo/reset")
    def demo_reset(engine: AlertEngine = Depends(get_engine)):
        """
        Reset to baseline. Only available when DEMO_MODE=true.
        Restores seed clinics, clears alerts, toasts and the usage log.
        """
        if not is_demo_mode():
            raise HTTPException(status_code=404, detail="Demo reset not available")
        engine.reset(reseed=lambda tenants: seed_data(tenants, now=engine.now()))
        return {"status": "ok"}

    return app


_settings = load_settings()
logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app(settings=_settings)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

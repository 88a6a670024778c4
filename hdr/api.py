from __future__ import annotations

from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Query

from . import db
from .api_models import EventOut, JobOut, PassOut, StatusOut
from .runtime import RuntimeState


def create_app(runtime: RuntimeState) -> FastAPI:
    """Read-only status surface over the published runtime state."""
    app = FastAPI(title="HTTP Directory Reconciler")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/status", response_model=StatusOut)
    def status() -> StatusOut:
        st = runtime.status()
        last = st.pop("last_pass")
        return StatusOut(**st, last_pass=PassOut(**asdict(last)) if last else None)

    @app.get("/jobs", response_model=list[JobOut])
    def list_jobs() -> list[JobOut]:
        return [JobOut(**asdict(j)) for j in runtime.list_jobs()]

    @app.get("/jobs/{name}", response_model=JobOut)
    def get_job(name: str) -> JobOut:
        job = runtime.get_job(name)
        if job is None:
            raise HTTPException(status_code=404, detail=f"no running job named '{name}'")
        return JobOut(**asdict(job))

    @app.get("/events", response_model=list[EventOut])
    def events(
        limit: int = Query(100, ge=1, le=1000),
        job: str | None = None,
        level: str | None = None,
    ) -> list[EventOut]:
        return [EventOut(**e) for e in db.latest_events(limit=limit, job_name=job, level=level)]

    return app

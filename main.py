from __future__ import annotations

import logging
import sys
from typing import Any

from fastapi import FastAPI, HTTPException, Query

from spw import db
from spw.api_models import CycleOut, EventOut, ProblemOut, StatusOut
from spw.controller import Controller
from spw.errors import CredentialError
from spw.k8s import build_core_api
from spw.logs import setup_logging
from spw.models import iso, utc_now
from spw.remediation import build_remediator
from spw.settings import Settings, load_settings

log = logging.getLogger("spw.main")


def bootstrap(settings: Settings) -> Controller:
    """Wire settings, audit db, Kubernetes client and remediator together.

    Raises CredentialError when no cluster credentials can be found.
    """
    settings.log_warnings()
    db.init_db(settings.db_path)
    api = build_core_api()
    remediator = build_remediator(settings, api)
    return Controller(settings, api, remediator)


def _cycle_out(st) -> CycleOut:
    return CycleOut(
        cycles=st.cycles,
        list_failures=st.list_failures,
        remediations_ok=st.remediations_ok,
        remediations_failed=st.remediations_failed,
        last_cycle_at=iso(st.last_cycle_at) if st.last_cycle_at else None,
        last_cycle_ok=st.last_cycle_ok,
        last_pod_count=st.last_pod_count,
    )


def create_app(controller: Controller | None = None, start: bool = True) -> FastAPI:
    app = FastAPI(title="Stuck Pod Watchdog")
    app.state.controller = controller

    def _controller() -> Controller:
        c = app.state.controller
        if c is None:
            raise HTTPException(status_code=503, detail="Controller not running")
        return c

    @app.on_event("startup")
    def startup() -> None:
        if app.state.controller is None:
            app.state.controller = bootstrap(load_settings())
        if start:
            app.state.controller.start()

    @app.on_event("shutdown")
    def shutdown() -> None:
        if app.state.controller is not None:
            app.state.controller.stop()
            app.state.controller.join(timeout=5)

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        c = app.state.controller
        return {"status": "healthy", "last_cycle_ok": c.stats.last_cycle_ok if c else None}

    @app.get("/status", response_model=StatusOut)
    def status() -> StatusOut:
        c = _controller()
        return StatusOut(
            settings=c.settings.describe(),
            cycle=_cycle_out(c.stats),
            tracked=len(c.tracker),
        )

    @app.get("/problems", response_model=list[ProblemOut])
    def problems() -> list[ProblemOut]:
        c = _controller()
        now = utc_now()
        timeout = c.settings.pending_timeout
        out = []
        for ref, first_seen in sorted(c.tracker.problems().items(), key=lambda kv: kv[1]):
            elapsed = now - first_seen
            out.append(
                ProblemOut(
                    namespace=ref.namespace,
                    pod=ref.name,
                    first_seen=iso(first_seen),
                    elapsed_s=max(0, int(elapsed.total_seconds())),
                    remaining_s=max(0, int((timeout - elapsed).total_seconds())),
                )
            )
        return out

    @app.get("/events", response_model=list[EventOut])
    def events(limit: int = Query(50, ge=1, le=1000)) -> list[dict[str, Any]]:
        return db.latest_events(limit)

    @app.post("/cycle", response_model=CycleOut)
    def run_cycle() -> CycleOut:
        c = _controller()
        c.run_cycle()
        return _cycle_out(c.stats)

    return app


app = create_app()


def main() -> int:
    settings = load_settings()
    setup_logging(settings.log_file, settings.log_level)
    try:
        controller = bootstrap(settings)
    except CredentialError as e:
        log.critical("%s", e)
        return 1

    if not settings.enable_api:
        controller.run_forever()
        return 0

    import uvicorn

    controller.start()
    uvicorn.run(create_app(controller, start=False), host=settings.api_host, port=settings.api_port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())

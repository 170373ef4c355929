import os

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from engine.config import EngineConfig
from engine.engine import Engine
from engine.model import DEFAULT_CATALOG
from engine.parsing import build_side_from_scout, parse_notes_two_column
from runtime.runner import Job, JobRunner
from .schemas import (EstimateRequest, EstimateResponse, EventsResponse, JobResponse,
                      RecommendOut, RecommendRequest, ScoutRequest, SideIn)

app = FastAPI(title="Formation Engine API")
runner = JobRunner(Engine(catalog=DEFAULT_CATALOG, config=EngineConfig.from_env()))

_DEFAULT_ORIGINS = "http://localhost:5173,http://localhost:5174,http://localhost:5175"

# Enable CORS for development (the form runs on the Vite dev server)
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("ENGINE_CORS_ORIGINS", _DEFAULT_ORIGINS).split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _job_response(job: Job) -> JobResponse:
    return JobResponse(
        job_id=job.id,
        status=job.status,
        result=RecommendOut.from_result(job.result) if job.result else None,
        error=job.error,
    )


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": "Formation Engine API",
        "docs": "/docs",
        "version": "1.0"
    }


@app.on_event("shutdown")
async def shutdown():
    """Cancel running searches on app shutdown."""
    await runner.stop()


@app.get("/battle-types")
async def get_battle_types():
    """List the battle types the estimator knows."""
    return [
        {
            "id": bt.id,
            "label": bt.label,
            "intensity": bt.intensity,
            "extra_skill_factor": bt.extra_skill_factor,
            "default_formation": bt.default_formation.as_dict(),
        }
        for bt in runner.engine.catalog
    ]


@app.post("/estimate")
async def estimate(req: EstimateRequest):
    """Win fraction of `me` against `enemy`."""
    win = await runner.estimate(req.me.to_side(), req.enemy.to_side(),
                                req.battle_type_id, req.sims)
    return EstimateResponse(win_pct=win)


@app.post("/recommend")
async def recommend(req: RecommendRequest):
    """Start a formation search; poll /recommend/{job_id} for the result."""
    job = await runner.submit(req.my.to_side(), req.enemy.to_side(), req.battle_type_id,
                              req.march_size, req.target_win, req.sims)
    print(f"[API] Recommend job {job.id} ({job.status}) march={req.march_size} "
          f"battle_type={req.battle_type_id}")
    return _job_response(job)


@app.get("/recommend/{job_id}")
async def get_recommendation(job_id: str, wait_s: float = 0.0):
    """Get a formation search job's status and result, optionally waiting up to wait_s."""
    job = await runner.wait(job_id, timeout_s=wait_s) if wait_s > 0 else runner.get(job_id)
    if not job:
        raise HTTPException(404, "Job not found")
    return _job_response(job)


@app.get("/events")
async def get_events(since: int = 0, limit: int = 500):
    """Get runner events since offset."""
    evts, next_offset = runner.events.since(since, limit)
    return EventsResponse(
        next_offset=next_offset,
        events=[{"kind": e.kind, "ts_ms": e.ts_ms, "data": e.data} for e in evts]
    )


@app.post("/parse/scout")
async def parse_scout(req: ScoutRequest):
    """Parse a pasted scouting report into a side."""
    special = None
    if req.notes_text:
        special, _ = parse_notes_two_column(req.notes_text)
    side = build_side_from_scout(req.scout_text, req.tier_text, special)
    return SideIn.from_side(side)

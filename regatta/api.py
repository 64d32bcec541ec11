"""
REST API for the regatta backend.
Thin wrappers around domain logic and persistence. JSON bodies use the camelCase
field names of the stored schedule.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncGenerator, Generator

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from regatta import config
from regatta.errors import NotFoundError, RegattaError
from regatta.logging_config import setup_logging
from regatta.models import BoatSet, Settings
from regatta.persistence import get_connection, init_db
from regatta.persistence.db import get_db_path
from regatta.services.knockout import KnockoutMatchup
from regatta.services.leaderboard import leaderboard_to_dict
from regatta.services.race_service import UNSET, RaceService

logger = logging.getLogger(__name__)


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def _http_error(e: RegattaError) -> HTTPException:
    status = 404 if isinstance(e, NotFoundError) else 400
    logger.info("Rejected request (%d): %s", status, e)
    return HTTPException(status_code=status, detail=str(e))


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    init_db(db_path=get_db_path())
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Regatta API",
    description="Team racing schedules, results and leaderboards",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = RaceService()


# ---------- Request models ----------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BoatSetBody(_CamelModel):
    id: str
    team1_color: str = Field(..., alias="team1Color")
    team2_color: str = Field(..., alias="team2Color")

    def to_domain(self) -> BoatSet:
        return BoatSet(id=self.id, team1_color=self.team1_color, team2_color=self.team2_color)


class GenerateScheduleRequest(_CamelModel):
    teams: list[str] | None = Field(None, description="Omit to use settings (team list or leagues)")
    boat_sets: list[BoatSetBody] | None = Field(None, alias="boatSets")
    leagues: list[str] | None = Field(None, description="League names from settings")
    racing_format: str | None = Field(None, alias="racingFormat")

    def service_kwargs(self) -> dict[str, Any]:
        return {
            "teams": self.teams,
            "boat_sets": [b.to_domain() for b in self.boat_sets] if self.boat_sets is not None else None,
            "league_names": self.leagues,
            "racing_format": self.racing_format,
        }


class ResultRequest(_CamelModel):
    race_number: int = Field(..., alias="raceNumber")
    # Positions are validated by the service so booleans and zeros are rejected, not coerced.
    # An explicit null clears the result; leaving the field out keeps it.
    result: list[Any] | None = None
    status: str | None = None
    start_time: str | None = Field(None, alias="startTime")
    end_time: str | None = Field(None, alias="endTime")


class StartRaceRequest(_CamelModel):
    race_number: int = Field(..., alias="raceNumber")
    start_time: str | None = Field(None, alias="startTime")


class LeagueBody(_CamelModel):
    id: str | None = None
    name: str = Field(..., min_length=1)
    teams: list[str] = Field(default_factory=list)
    boat_sets: list[BoatSetBody] = Field(default_factory=list, alias="boatSets")


class SettingsRequest(_CamelModel):
    use_leagues: bool | None = Field(None, alias="useLeagues")
    leagues: list[LeagueBody] | None = None
    team_input: str | None = Field(None, alias="teamInput")
    boat_sets: list[BoatSetBody] | None = Field(None, alias="boatSets")
    racing_format: str | None = Field(None, alias="racingFormat")
    event_name: str | None = Field(None, alias="eventName")


class MatchupBody(_CamelModel):
    team_a: str = Field(..., alias="teamA")
    team_b: str = Field(..., alias="teamB")
    league: str | None = None
    boat_set: str | None = Field(None, alias="boatSet")
    match_number: int | None = Field(None, alias="matchNumber")


class KnockoutRequest(_CamelModel):
    matchups: list[MatchupBody]
    best_of: int = Field(..., alias="bestOf")
    stage: str
    racing_format: str | None = Field(None, alias="racingFormat")


# ---------- Endpoints ----------


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/schedule")
def get_schedule() -> list[dict[str, Any]]:
    with db_conn() as conn:
        return [r.to_dict() for r in service.get_races(conn)]


@app.post("/schedule/generate")
def generate_schedule(req: GenerateScheduleRequest) -> dict[str, Any]:
    """Replace the schedule with a fresh round robin."""
    with db_conn() as conn:
        try:
            races = service.generate_schedule(conn, **req.service_kwargs())
        except RegattaError as e:
            raise _http_error(e) from e
    return {"success": True, "races": [r.to_dict() for r in races]}


@app.post("/schedule/add-round-robin")
def add_round_robin(req: GenerateScheduleRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            races = service.add_round_robin(conn, **req.service_kwargs())
        except RegattaError as e:
            raise _http_error(e) from e
    return {"success": True, "races": [r.to_dict() for r in races]}


@app.post("/results")
def submit_result(req: ResultRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            race = service.submit_result(
                conn,
                req.race_number,
                result=req.result if "result" in req.model_fields_set else UNSET,
                status=req.status,
                start_time=req.start_time,
                end_time=req.end_time,
            )
        except RegattaError as e:
            raise _http_error(e) from e
    return {"success": True, "message": "Race updated successfully", "race": race.to_dict()}


@app.post("/results/reset")
def reset_leaderboard() -> dict[str, Any]:
    with db_conn() as conn:
        service.reset_leaderboard(conn)
    return {"success": True, "message": "Leaderboard reset successfully"}


@app.post("/race/start")
def start_race(req: StartRaceRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            race = service.start_race(conn, req.race_number, req.start_time)
        except RegattaError as e:
            raise _http_error(e) from e
    return {"success": True, "message": "Race started successfully", "race": race.to_dict()}


@app.get("/leaderboard")
def get_leaderboard() -> dict[str, list[dict]]:
    """League name -> ranked teams. Computed from the schedule on every request."""
    with db_conn() as conn:
        return leaderboard_to_dict(service.leaderboard(conn))


@app.get("/settings")
def get_settings() -> dict[str, Any]:
    with db_conn() as conn:
        return service.get_settings(conn).to_dict()


@app.post("/settings")
def save_settings(req: SettingsRequest) -> dict[str, Any]:
    """Missing fields fall back to defaults, as for a settings file written by an older version."""
    settings = Settings.from_dict(req.model_dump(by_alias=True, exclude_none=True))
    with db_conn() as conn:
        try:
            saved = service.update_settings(conn, settings)
        except RegattaError as e:
            raise _http_error(e) from e
    return {"success": True, "settings": saved.to_dict()}


@app.post("/knockouts/generate")
def generate_knockouts(req: KnockoutRequest) -> dict[str, Any]:
    matchups = [KnockoutMatchup.from_dict(m.model_dump(by_alias=True)) for m in req.matchups]
    with db_conn() as conn:
        try:
            races = service.generate_knockouts(conn, matchups, req.best_of, req.stage, req.racing_format)
        except RegattaError as e:
            raise _http_error(e) from e
    return {"success": True, "races": [r.to_dict() for r in races]}


@app.delete("/knockouts")
def delete_knockouts(unsailed_only: bool = Query(False, alias="unsailedOnly")) -> dict[str, Any]:
    with db_conn() as conn:
        removal = service.remove_knockouts(conn, unsailed_only=unsailed_only)
    return {
        "success": True,
        "removed": len(removal.removed),
        "races": [r.to_dict() for r in removal.kept],
    }


@app.get("/metrics")
def get_metrics() -> dict[str, Any]:
    with db_conn() as conn:
        return service.metrics(conn).to_dict()


# ---------- Run with: uvicorn regatta.api:app --reload ----------

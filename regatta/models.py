"""
Data models for the regatta backend.
Domain objects only; no persistence or API logic.

Race records keep the persisted camelCase JSON field names at the edges
(to_dict / from_dict) so existing stored schedules stay readable.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from regatta import config


# ---------- Racing format ----------
class RacingFormat(str, Enum):
    """Boats per team. Result arrays hold 2 × boats_per_team positions."""
    TWO_V_TWO = "2v2"
    THREE_V_THREE = "3v3"
    FOUR_V_FOUR = "4v4"

    @property
    def boats_per_team(self) -> int:
        return int(self.value[0])


# ---------- Race status ----------
class RaceStatus(str, Enum):
    """Advisory only; completion is decided from the result itself."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


# ---------- Knockout stage ----------
class KnockoutStage(str, Enum):
    QUARTER = "quarter"
    SEMI = "semi"
    FINAL = "final"


# ---------- League mode ----------
class LeagueMode(str, Enum):
    """
    Chosen once per leaderboard computation.
    IMPLICIT_MAIN: no race carries a league, everything ranks in "main".
    SCOPED: races rank only within their own league.
    """
    SCOPED = "scoped"
    IMPLICIT_MAIN = "implicit_main"


IMPLICIT_LEAGUE = "main"


# ---------- Boats ----------
@dataclass(frozen=True)
class BoatAssignment:
    """The two boat identifiers (usually colours) a race is sailed in."""
    team_a: str
    team_b: str
    set_id: str | None = None

    @property
    def pair_key(self) -> frozenset[str]:
        """Unordered identity: a swapped pairing on the same boats is the same lineage."""
        return frozenset((self.team_a, self.team_b))

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"teamA": self.team_a, "teamB": self.team_b}
        if self.set_id is not None:
            d["setId"] = self.set_id
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BoatAssignment:
        data = data or {}
        return cls(
            team_a=str(data.get("teamA", "")),
            team_b=str(data.get("teamB", "")),
            set_id=data.get("setId"),
        )


@dataclass(frozen=True)
class BoatSet:
    """A physical pair of boats reused across many races."""
    id: str
    team1_color: str
    team2_color: str

    @property
    def pair_key(self) -> frozenset[str]:
        return frozenset((self.team1_color, self.team2_color))

    def assignment(self, include_id: bool = False) -> BoatAssignment:
        return BoatAssignment(
            team_a=self.team1_color,
            team_b=self.team2_color,
            set_id=self.id if include_id else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "team1Color": self.team1_color, "team2Color": self.team2_color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BoatSet:
        return cls(
            id=str(data.get("id", "")),
            team1_color=str(data.get("team1Color", "")),
            team2_color=str(data.get("team2Color", "")),
        )


# ---------- Race ----------
@dataclass
class Race:
    """
    One scheduled race between two teams on one boat set.
    result: finish positions, first half teamA's boats, second half teamB's; None = not sailed.
    is_launching / go_to_changeover are derived display flags, recomputed by the changeover pass.
    """
    race_number: int
    team_a: str
    team_b: str
    boats: BoatAssignment
    league: str | None = None
    racing_format: str | None = None
    result: list[int] | None = None
    status: str | None = None  # RaceStatus value
    start_time: str | None = None
    end_time: str | None = None
    is_knockout: bool = False
    stage: str | None = None  # KnockoutStage value
    match_number: int | None = None
    best_of: int | None = None
    is_launching: bool = False
    go_to_changeover: bool = False

    def involves(self, team: str) -> bool:
        return self.team_a == team or self.team_b == team

    def opponent_of(self, team: str) -> str:
        return self.team_b if self.team_a == team else self.team_a

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "raceNumber": self.race_number,
            "teamA": self.team_a,
            "teamB": self.team_b,
            "boats": self.boats.to_dict(),
        }
        if self.league is not None:
            d["league"] = self.league
        if self.racing_format is not None:
            d["racingFormat"] = self.racing_format
        if self.result is not None:
            d["result"] = list(self.result)
        if self.status is not None:
            d["status"] = self.status
        if self.start_time is not None:
            d["startTime"] = self.start_time
        if self.end_time is not None:
            d["endTime"] = self.end_time
        if self.is_knockout:
            d["isKnockout"] = True
            d["stage"] = self.stage
            d["matchNumber"] = self.match_number
            d["bestOf"] = self.best_of
        d["isLaunching"] = self.is_launching
        d["goToChangeover"] = self.go_to_changeover
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Race:
        result = data.get("result")
        return cls(
            race_number=int(data["raceNumber"]),
            team_a=str(data.get("teamA", "")),
            team_b=str(data.get("teamB", "")),
            boats=BoatAssignment.from_dict(data.get("boats")),
            league=data.get("league") or None,
            racing_format=data.get("racingFormat"),
            result=list(result) if result is not None else None,
            status=data.get("status"),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            is_knockout=bool(data.get("isKnockout", False)),
            stage=data.get("stage"),
            match_number=data.get("matchNumber"),
            best_of=data.get("bestOf"),
            is_launching=bool(data.get("isLaunching", False)),
            go_to_changeover=bool(data.get("goToChangeover", False)),
        )


# ---------- Team ranking ----------
@dataclass(frozen=True)
class TeamRanking:
    """
    One team's row on a league leaderboard. Rebuilt on every computation, never persisted.
    place is 1-based; teams still tied after every tie-break share a place.
    points is kept for compatibility with stored leaderboards and is always 0.
    """
    team: str
    wins: int = 0
    total_races: int = 0
    win_percentage: float = 0.0
    points: int = 0
    place: int = 0
    league: str = IMPLICIT_LEAGUE
    tiebreak_note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "team": self.team,
            "wins": self.wins,
            "totalRaces": self.total_races,
            "winPercentage": self.win_percentage,
            "points": self.points,
            "place": self.place,
            "league": self.league,
        }
        if self.tiebreak_note is not None:
            d["tiebreakNote"] = self.tiebreak_note
        return d


# ---------- Settings ----------
@dataclass
class LeagueConfig:
    """A league as configured in settings: its teams and the boat sets it races on."""
    name: str
    teams: list[str] = field(default_factory=list)
    boat_sets: list[BoatSet] = field(default_factory=list)
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id if self.id is not None else self.name,
            "name": self.name,
            "teams": list(self.teams),
            "boatSets": [b.to_dict() for b in self.boat_sets],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LeagueConfig:
        return cls(
            id=data.get("id"),
            name=str(data.get("name", "")),
            teams=[str(t) for t in data.get("teams") or []],
            boat_sets=[BoatSet.from_dict(b) for b in data.get("boatSets") or []],
        )


@dataclass
class Settings:
    """Event settings document. Missing fields fall back to defaults for older files."""
    use_leagues: bool = False
    leagues: list[LeagueConfig] = field(default_factory=list)
    team_input: str = ""
    boat_sets: list[BoatSet] = field(default_factory=list)
    racing_format: str = config.DEFAULT_RACING_FORMAT
    event_name: str = config.DEFAULT_EVENT_NAME

    def find_league(self, name: str) -> LeagueConfig | None:
        for league in self.leagues:
            if league.name == name:
                return league
        return None

    def all_boat_sets(self) -> list[BoatSet]:
        """Boat sets from the global list and every league, global first, first id wins."""
        seen: set[str] = set()
        out: list[BoatSet] = []
        for bs in [*self.boat_sets, *(b for lg in self.leagues for b in lg.boat_sets)]:
            if bs.id in seen:
                continue
            seen.add(bs.id)
            out.append(bs)
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "useLeagues": self.use_leagues,
            "leagues": [lg.to_dict() for lg in self.leagues],
            "teamInput": self.team_input,
            "boatSets": [b.to_dict() for b in self.boat_sets],
            "racingFormat": self.racing_format,
            "eventName": self.event_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Settings:
        data = data or {}
        return cls(
            use_leagues=bool(data.get("useLeagues", False)),
            leagues=[LeagueConfig.from_dict(lg) for lg in data.get("leagues") or []],
            team_input=str(data.get("teamInput") or ""),
            boat_sets=[BoatSet.from_dict(b) for b in data.get("boatSets") or []],
            racing_format=data.get("racingFormat") or config.DEFAULT_RACING_FORMAT,
            event_name=data.get("eventName") or config.DEFAULT_EVENT_NAME,
        )

"""Pydantic models for football-data.org responses and the ranking snapshot."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Team(BaseModel):
    id: int | None = None
    name: str
    shortName: str | None = None
    crest: str = ""


class TableRow(BaseModel):
    position: int
    team: Team
    playedGames: int = 0
    won: int = 0
    draw: int = 0
    lost: int = 0
    points: int = 0
    goalsFor: int = 0
    goalsAgainst: int = 0
    goalDifference: int | None = None


class Standing(BaseModel):
    stage: str | None = None
    type: str  # TOTAL, HOME, AWAY
    group: str | None = None
    table: list[TableRow] = Field(default_factory=list)


class StandingsResponse(BaseModel):
    standings: list[Standing] = Field(default_factory=list)

    def table(self, table_type: str = "TOTAL") -> list[TableRow]:
        wanted = table_type.upper()
        for standing in self.standings:
            if standing.type == wanted:
                return standing.table
        return []


class SeasonResult(BaseModel):
    points: int
    position: int


class ClubAggregate(BaseModel):
    """All-time totals for one club, keyed by its upstream display name."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    crest_url: str = Field(default="", alias="crestUrl")
    points: int = 0
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = Field(default=0, alias="goalsFor")
    goals_against: int = Field(default=0, alias="goalsAgainst")
    goal_difference: int = Field(default=0, alias="goalDifference")
    win_rate: float = Field(default=0.0, alias="winRate")
    per_season: dict[int, SeasonResult] = Field(default_factory=dict, alias="perSeason")

    def add_row(self, season: int, row: TableRow) -> None:
        self.points += row.points
        self.played += row.playedGames
        self.won += row.won
        self.drawn += row.draw
        self.lost += row.lost
        self.goals_for += row.goalsFor
        self.goals_against += row.goalsAgainst
        self.per_season[season] = SeasonResult(points=row.points, position=row.position)
        if not self.crest_url and row.team.crest:
            self.crest_url = row.team.crest

    def finalize(self) -> None:
        """Compute derived fields once every season has been folded in."""
        self.goal_difference = self.goals_for - self.goals_against
        self.win_rate = (self.points / (self.played * 3)) * 100 if self.played else 0.0


class RankingSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    generated_at: datetime = Field(alias="generatedAt")
    ranking: list[ClubAggregate] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

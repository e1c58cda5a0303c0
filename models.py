"""Record and derived-result dataclasses, plus their wire (de)serialization.

Uploaded records use the upload format's keys (``nome``, ``equipe``, ``acao``,
...); attribute names are English. ``to_dict`` writes the upload format back
out so a listed record can be re-uploaded unchanged.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from uuid import UUID

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` calendar date.

    ``strptime`` alone accepts ``2024-1-5``; the length check rejects it.
    """
    if not isinstance(value, str) or len(value) != 10:
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
    return datetime.strptime(value, DATE_FORMAT).date()


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


@dataclass(frozen=True)
class Project:
    name: str
    completed: bool

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        return cls(name=data["nome"], completed=data["concluido"])

    def to_dict(self) -> dict[str, Any]:
        return {"nome": self.name, "concluido": self.completed}


@dataclass(frozen=True)
class Team:
    name: str
    leader: bool  # this record's user leads the team, not a team-wide flag
    projects: tuple[Project, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Team":
        return cls(
            name=data["nome"],
            leader=data["lider"],
            projects=tuple(Project.from_dict(p) for p in data.get("projetos", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nome": self.name,
            "lider": self.leader,
            "projetos": [p.to_dict() for p in self.projects],
        }


@dataclass(frozen=True)
class LogEntry:
    day: date
    action: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        return cls(day=parse_date(data["data"]), action=data["acao"])

    def to_dict(self) -> dict[str, Any]:
        return {"data": format_date(self.day), "acao": self.action}


@dataclass(frozen=True)
class UserRecord:
    id: str
    name: str
    age: int
    score: float
    active: bool
    country: str
    team: Team
    logs: tuple[LogEntry, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserRecord":
        """Build a record from an already schema-validated dict.

        Raises ValueError on a bad identifier or date.
        """
        return cls(
            id=str(UUID(data["id"])),
            name=data["nome"],
            age=int(data["idade"]),
            score=data["score"],
            active=data["ativo"],
            country=data["pais"],
            team=Team.from_dict(data["equipe"]),
            logs=tuple(LogEntry.from_dict(entry) for entry in data.get("logs", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        score = int(self.score) if float(self.score).is_integer() else self.score
        return {
            "id": self.id,
            "nome": self.name,
            "idade": self.age,
            "score": score,
            "ativo": self.active,
            "pais": self.country,
            "equipe": self.team.to_dict(),
            "logs": [entry.to_dict() for entry in self.logs],
        }


@dataclass(frozen=True)
class CountryTally:
    country: str
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {"country": self.country, "total": self.total}


@dataclass(frozen=True)
class TeamInsight:
    team: str
    total_members: int
    leaders: int
    completed_projects: int
    active_percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "team": self.team,
            "total_members": self.total_members,
            "leaders": self.leaders,
            "completed_projects": self.completed_projects,
            "active_percentage": self.active_percentage,
        }


@dataclass(frozen=True)
class DailyLoginCount:
    day: date
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {"date": format_date(self.day), "total": self.total}


@dataclass(frozen=True)
class EvaluationResult:
    status: int
    time_ms: int
    valid_response: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "time_ms": self.time_ms,
            "valid_response": self.valid_response,
        }


@dataclass
class EvaluationReport:
    """Per-target outcome of one evaluation pass; a target is in exactly one map."""

    results: dict[str, EvaluationResult] = field(default_factory=dict)
    errors: dict[str, dict[str, str]] = field(default_factory=dict)

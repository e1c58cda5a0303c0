from collections import Counter

from errors import EmptyStore
from models import CountryTally, TeamInsight

SUPERUSER_MIN_SCORE = 900
TOP_COUNTRIES_LIMIT = 5


class AggregationEngine:
    """Superuser, country and team aggregations over a store snapshot.

    Nothing is cached: every call recomputes from the current records.
    """

    def __init__(self, store, min_score=SUPERUSER_MIN_SCORE):
        self._store = store
        self._min_score = min_score

    def _snapshot(self):
        records = self._store.all()
        if not records:
            raise EmptyStore()
        return records

    def is_superuser(self, record):
        return record.score >= self._min_score and record.active

    def superusers(self):
        """Active users scoring at least the threshold, ordered by identifier."""
        records = self._snapshot()
        return sorted(
            (r for r in records if self.is_superuser(r)),
            key=lambda r: r.id,
        )

    def top_countries(self, limit=TOP_COUNTRIES_LIMIT):
        """Countries with the most superusers.

        Sorted by count descending; equal counts are ordered by country code.
        """
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")

        counts = Counter(r.country for r in self.superusers())
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [CountryTally(country=c, total=n) for c, n in ranked[:limit]]

    def team_insights(self):
        """Per-team member, leader, project and activity statistics by team name.

        Completed projects are summed across members without deduplication, so
        a project listed by two members counts twice.
        """
        records = self._snapshot()

        members = Counter()
        leaders = Counter()
        completed = Counter()
        active = Counter()

        for record in records:
            team = record.team.name
            members[team] += 1
            if record.team.leader:
                leaders[team] += 1
            completed[team] += sum(1 for p in record.team.projects if p.completed)
            if record.active:
                active[team] += 1

        return [
            TeamInsight(
                team=team,
                total_members=members[team],
                leaders=leaders[team],
                completed_projects=completed[team],
                active_percentage=active[team] / members[team] * 100,
            )
            for team in sorted(members)
        ]

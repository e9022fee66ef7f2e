"""
Privacy-preserving team rollups for managers.

Only consenting, active direct reports contribute, and nothing is returned
below the minimum group size. Burnout scores are exposed only as coarse
buckets, and a weekly average is shown only for weeks in which enough
distinct members contributed.
"""

from dataclasses import replace
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from wellspring.config import AggregateParams, EngineConfig
from wellspring.models import (
    ActionItem,
    PrivacySuppressed,
    TeamAggregate,
    TrendDirection,
    WeeklyTrendPoint,
    Zone,
    ZoneState,
)
from wellspring.signals import classify_direction


ZONE_HEALTH_WEIGHTS = {Zone.GREEN: 100, Zone.YELLOW: 60, Zone.RED: 20}


def week_start(day: date) -> date:
    """Monday of the calendar week containing `day`."""
    return day - timedelta(days=day.weekday())


class TeamAggregator:
    """
    Computes TeamAggregate views over consenting members' zone histories.

    The privacy floor is injected here rather than read from a module-level
    constant, so boundary sizes can be exercised per instance.
    """

    def __init__(
        self,
        min_aggregate_size: Optional[int] = None,
        cfg: Optional[EngineConfig] = None,
    ):
        self.cfg = cfg or EngineConfig()
        self.params: AggregateParams = self.cfg.aggregate
        self.min_aggregate_size = (
            min_aggregate_size if min_aggregate_size is not None else self.params.min_aggregate_size
        )
        if self.min_aggregate_size < 1:
            raise ValueError(f"min_aggregate_size must be >= 1, got {self.min_aggregate_size}")

    # -- helpers ---------------------------------------------------------------

    def _suppressed(self, manager_id: str, count: int, note: str) -> PrivacySuppressed:
        return PrivacySuppressed(
            manager_id=manager_id,
            consenting_count=count,
            minimum_required=self.min_aggregate_size,
            note=note,
        )

    def _bucket(self, score: float) -> str:
        if score < self.params.bucket_moderate:
            return "low"
        if score < self.params.bucket_high:
            return "moderate"
        return "high"

    def weekly_trend(
        self,
        member_histories: Mapping[str, Sequence[ZoneState]],
        as_of: date,
    ) -> List[WeeklyTrendPoint]:
        """
        Team averages for the last `weeks` calendar weeks, most recent first.

        Each member is averaged within the week first so members with more
        scored days do not dominate. Weeks below the privacy floor are omitted.
        """
        first_week = week_start(as_of) - timedelta(weeks=self.params.weeks - 1)
        rows = [
            {
                "employee_id": s.employee_id,
                "week": pd.Timestamp(week_start(s.date)),
                "burnout": s.burnout_score,
                "readiness": s.readiness_score,
            }
            for states in member_histories.values()
            for s in states
            if first_week <= s.date <= as_of
        ]
        if not rows:
            return []

        df = pd.DataFrame(rows)
        per_member = df.groupby(["week", "employee_id"])[["burnout", "readiness"]].mean()
        weekly = per_member.groupby(level="week").agg(
            avg_burnout=("burnout", "mean"),
            avg_readiness=("readiness", "mean"),
            member_count=("burnout", "size"),
        )
        weekly = weekly[weekly["member_count"] >= self.min_aggregate_size]
        weekly = weekly.sort_index(ascending=False)

        return [
            WeeklyTrendPoint(
                week_start=week.date(),
                avg_burnout=round(float(row.avg_burnout), 1),
                avg_readiness=round(float(row.avg_readiness), 1),
                member_count=int(row.member_count),
            )
            for week, row in weekly.iterrows()
        ]

    def action_items(self, aggregate: TeamAggregate) -> List[ActionItem]:
        """Deterministic presentation hints over an already computed rollup."""
        items: List[ActionItem] = []
        red = aggregate.zone_distribution[Zone.RED]
        green = aggregate.zone_distribution[Zone.GREEN]

        if red > 0:
            items.append(ActionItem(
                priority="high",
                kind="attention",
                message=f"{red} team member(s) in red zone",
                action="Consider scheduling 1:1 check-ins with affected team members",
            ))

        if aggregate.trend_direction is TrendDirection.WORSENING:
            items.append(ActionItem(
                priority="medium",
                kind="trend",
                message="Team burnout trend is worsening",
                action="Review workload distribution and upcoming deadlines",
            ))

        if aggregate.elevated_stress_percentage > 50:
            items.append(ActionItem(
                priority="medium",
                kind="widespread",
                message=f"{aggregate.elevated_stress_percentage}% of team showing elevated stress",
                action="Consider team-wide interventions like reduced meetings or flexible hours",
            ))

        if green > aggregate.team_size * 0.6:
            items.append(ActionItem(
                priority="low",
                kind="positive",
                message="Majority of team in green zone",
                action="Good time for stretch assignments or new initiatives",
            ))

        return items

    # -- entry point -----------------------------------------------------------

    def aggregate(
        self,
        manager_id: str,
        member_histories: Mapping[str, Sequence[ZoneState]],
        as_of: Optional[date] = None,
    ) -> Union[TeamAggregate, PrivacySuppressed]:
        """
        Roll up the latest zone state of each consenting member.

        `member_histories` must already be restricted to consenting, active
        members. Members without any state do not count toward the floor.
        """
        consenting = len(member_histories)
        if consenting < self.min_aggregate_size:
            return self._suppressed(
                manager_id, consenting,
                f"Aggregate views require at least {self.min_aggregate_size} consenting team members.",
            )

        latest: Dict[str, ZoneState] = {}
        for emp, states in member_histories.items():
            eligible = [s for s in states if as_of is None or s.date <= as_of]
            if eligible:
                latest[emp] = max(eligible, key=lambda s: s.date)
        if len(latest) < self.min_aggregate_size:
            return self._suppressed(
                manager_id, consenting,
                "Not enough consenting team members have wellness data yet.",
            )

        if as_of is None:
            as_of = max(s.date for s in latest.values())

        team_size = len(latest)
        zones = {z: 0 for z in Zone}
        buckets = {"low": 0, "moderate": 0, "high": 0}
        elevated = 0
        for state in latest.values():
            zones[state.zone] += 1
            buckets[self._bucket(state.burnout_score)] += 1
            if state.burnout_score >= self.params.elevated_stress:
                elevated += 1

        weekly = self.weekly_trend(member_histories, as_of)
        direction = TrendDirection.STABLE
        if len(weekly) >= 2:
            direction = classify_direction(
                weekly[0].avg_burnout - weekly[1].avg_burnout,
                self.params.week_min_delta,
            )

        health = round(sum(ZONE_HEALTH_WEIGHTS[z] * n for z, n in zones.items()) / team_size)

        result = TeamAggregate(
            manager_id=manager_id,
            team_size=team_size,
            zone_distribution=zones,
            burnout_distribution=buckets,
            weekly_trend=weekly,
            trend_direction=direction,
            elevated_stress_count=elevated,
            elevated_stress_percentage=round(100 * elevated / team_size),
            team_health_score=health,
            action_items=[],
            as_of=as_of,
        )
        return replace(result, action_items=self.action_items(result))

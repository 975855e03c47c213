"""
Travel analytics for a user, an organization or the whole platform.
"""

from __future__ import annotations

import calendar
import csv
import io
import logging
import time
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select

from backend.auth import CurrentUser
from backend.db import ActivityRow, Database, TripRow, UserRow
from backend.errors import AccessDeniedError, BadRequestError
from backend.schemas import (
    AnalyticsOverview,
    AnalyticsResponse,
    DestinationStat,
    DurationBucket,
    GrowthPoint,
    RecentActivity,
    TagStat,
    UserEngagement,
    UserFunnel,
    YearInTravelResponse,
)
from shared.geo import trip_day_count

logger = logging.getLogger(__name__)

SCOPES = ("personal", "organization", "global")
TOP_N = 10
GROWTH_WEEKS = 8
RECENT_DAYS = 7
DURATION_BUCKETS = (
    ("Weekend (1-2 days)", 1, 2),
    ("Short Trip (3-5 days)", 3, 5),
    ("Long Trip (6-10 days)", 6, 10),
    ("Extended Trip (10+ days)", 11, None),
)


@dataclass
class _ScopeData:
    trips: list[TripRow]
    users: list[UserRow]
    activities: list[ActivityRow]


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _day_of(timestamp: float) -> date:
    return datetime.fromtimestamp(timestamp, timezone.utc).date()


def _load_scope(db: Database, user: CurrentUser, scope: str) -> _ScopeData:
    if scope not in SCOPES:
        raise BadRequestError(f"Unknown analytics scope: {scope}")
    if scope == "global" and not user.is_superadmin:
        raise AccessDeniedError("Global analytics require superadmin access")
    if scope == "organization":
        if not user.is_admin:
            raise AccessDeniedError("Organization analytics require admin access")
        if user.organization_id is None:
            raise BadRequestError("User is not part of an organization")

    trips_query = select(TripRow)
    users_query = select(UserRow)
    if scope == "personal":
        trips_query = trips_query.where(TripRow.user_id == user.id)
        users_query = users_query.where(UserRow.id == user.id)
    elif scope == "organization":
        trips_query = trips_query.where(TripRow.organization_id == user.organization_id)
        users_query = users_query.where(UserRow.organization_id == user.organization_id)

    with db.session() as session:
        trips = list(session.execute(trips_query).scalars())
        users = list(session.execute(users_query).scalars())
        trip_ids = [trip.id for trip in trips]
        activities = (
            list(
                session.execute(
                    select(ActivityRow).where(ActivityRow.trip_id.in_(trip_ids))
                ).scalars()
            )
            if trip_ids
            else []
        )
    return _ScopeData(trips=trips, users=users, activities=activities)


def _overview(data: _ScopeData) -> AnalyticsOverview:
    total_trips = len(data.trips)
    lengths = [trip_day_count(t.start_date, t.end_date) for t in data.trips]
    return AnalyticsOverview(
        total_trips=total_trips,
        total_users=len(data.users),
        total_activities=len(data.activities),
        average_trip_length=round(sum(lengths) / total_trips, 1) if total_trips else 0.0,
        average_activities_per_trip=(
            round(len(data.activities) / total_trips, 1) if total_trips else 0.0
        ),
    )


def _destinations(data: _ScopeData) -> list[DestinationStat]:
    counts = Counter((t.city, t.country) for t in data.trips if t.city)
    return [
        DestinationStat(
            city=city,
            country=country,
            trip_count=count,
            percentage=_percent(count, len(data.trips)),
        )
        for (city, country), count in counts.most_common(TOP_N)
    ]


def _duration_label(days: int) -> str:
    for label, low, high in DURATION_BUCKETS:
        if days >= low and (high is None or days <= high):
            return label
    return DURATION_BUCKETS[0][0]


def _trip_durations(data: _ScopeData) -> list[DurationBucket]:
    counts = Counter(
        _duration_label(trip_day_count(t.start_date, t.end_date)) for t in data.trips
    )
    return [
        DurationBucket(
            duration=label,
            count=counts[label],
            percentage=_percent(counts[label], len(data.trips)),
        )
        for label, _, _ in DURATION_BUCKETS
    ]


def _activity_tags(data: _ScopeData) -> list[TagStat]:
    counts = Counter(a.tag for a in data.activities if a.tag)
    return [
        TagStat(tag=tag, count=count, percentage=_percent(count, len(data.activities)))
        for tag, count in counts.most_common(TOP_N)
    ]


def _owners(data: _ScopeData) -> tuple[set, set, set]:
    trip_owner = {t.id: t.user_id for t in data.trips}
    with_trips = set(trip_owner.values())
    with_activities = {trip_owner[a.trip_id] for a in data.activities}
    with_completed = {t.user_id for t in data.trips if t.completed}
    return with_trips, with_activities, with_completed


def _engagement(data: _ScopeData) -> UserEngagement:
    with_trips, with_activities, _ = _owners(data)
    return UserEngagement(
        users_with_trips=len(with_trips),
        users_with_activities=len(with_activities),
        trip_completion_rate=_percent(
            sum(1 for t in data.trips if t.completed), len(data.trips)
        ),
        activity_completion_rate=_percent(
            sum(1 for a in data.activities if a.completed), len(data.activities)
        ),
    )


def _recent(data: _ScopeData, now: float) -> RecentActivity:
    cutoff = now - RECENT_DAYS * 86400
    return RecentActivity(
        new_trips_last_7_days=sum(1 for t in data.trips if t.created_at >= cutoff),
        new_activities_last_7_days=sum(
            1 for a in data.activities if a.created_at >= cutoff
        ),
        new_users_last_7_days=sum(1 for u in data.users if u.created_at >= cutoff),
    )


def _growth(data: _ScopeData, now: float) -> list[GrowthPoint]:
    today = _day_of(now)
    this_week = today - timedelta(days=today.weekday())
    points = []
    for weeks_ago in range(GROWTH_WEEKS - 1, -1, -1):
        start = this_week - timedelta(weeks=weeks_ago)
        end = start + timedelta(days=7)

        def in_week(rows) -> int:
            return sum(1 for row in rows if start <= _day_of(row.created_at) < end)

        points.append(
            GrowthPoint(
                week_start=start,
                trips=in_week(data.trips),
                users=in_week(data.users),
                activities=in_week(data.activities),
            )
        )
    return points


def _funnel(data: _ScopeData) -> UserFunnel:
    with_trips, with_activities, with_completed = _owners(data)
    return UserFunnel(
        total_users=len(data.users),
        users_with_trips=len(with_trips),
        users_with_activities=len(with_activities),
        users_with_completed_trips=len(with_completed),
    )


def get_analytics(
    db: Database, user: CurrentUser, scope: str = "personal", now: Optional[float] = None
) -> AnalyticsResponse:
    now = now or time.time()
    data = _load_scope(db, user, scope)
    return AnalyticsResponse(
        scope=scope,
        overview=_overview(data),
        destinations=_destinations(data),
        trip_durations=_trip_durations(data),
        activity_tags=_activity_tags(data),
        user_engagement=_engagement(data),
        recent_activity=_recent(data, now),
        growth_metrics=_growth(data, now),
        user_funnel=_funnel(data),
    )


def export_csv(analytics: AnalyticsResponse) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    overview = analytics.overview
    writer.writerow(["OVERVIEW"])
    writer.writerow(["Metric", "Value"])
    writer.writerow(["Total Trips", overview.total_trips])
    writer.writerow(["Total Users", overview.total_users])
    writer.writerow(["Total Activities", overview.total_activities])
    writer.writerow(["Average Trip Length (days)", overview.average_trip_length])
    writer.writerow(["Average Activities per Trip", overview.average_activities_per_trip])
    writer.writerow([])
    writer.writerow(["TOP DESTINATIONS"])
    writer.writerow(["City", "Country", "Trips", "Percentage"])
    for destination in analytics.destinations:
        writer.writerow(
            [
                destination.city,
                destination.country or "",
                destination.trip_count,
                f"{destination.percentage}%",
            ]
        )
    writer.writerow([])
    writer.writerow(["TRIP DURATIONS"])
    writer.writerow(["Duration", "Count", "Percentage"])
    for bucket in analytics.trip_durations:
        writer.writerow([bucket.duration, bucket.count, f"{bucket.percentage}%"])
    writer.writerow([])
    writer.writerow(["ACTIVITY TAGS"])
    writer.writerow(["Tag", "Count", "Percentage"])
    for tag in analytics.activity_tags:
        writer.writerow([tag.tag, tag.count, f"{tag.percentage}%"])
    return buffer.getvalue()


def travel_style(activities_per_day: float) -> str:
    if activities_per_day > 4:
        return "adventurer"
    if activities_per_day > 2:
        return "explorer"
    return "relaxer"


def year_in_travel(db: Database, user: CurrentUser, year: int) -> YearInTravelResponse:
    with db.session() as session:
        trips = list(
            session.execute(
                select(TripRow)
                .where(
                    TripRow.user_id == user.id,
                    TripRow.start_date >= date(year, 1, 1),
                    TripRow.start_date <= date(year, 12, 31),
                )
                .order_by(TripRow.start_date)
            ).scalars()
        )
        trip_ids = [trip.id for trip in trips]
        activity_count = (
            len(
                session.execute(
                    select(ActivityRow.id).where(ActivityRow.trip_id.in_(trip_ids))
                ).all()
            )
            if trip_ids
            else 0
        )

    lengths = {trip.id: trip_day_count(trip.start_date, trip.end_date) for trip in trips}
    total_days = sum(lengths.values())
    cities = Counter(trip.city for trip in trips if trip.city)
    months = Counter(trip.start_date.month for trip in trips)
    longest = max(trips, key=lambda trip: lengths[trip.id], default=None)
    return YearInTravelResponse(
        year=year,
        total_trips=len(trips),
        total_days=total_days,
        total_activities=activity_count,
        countries=sorted({trip.country for trip in trips if trip.country}),
        cities=sorted(cities),
        favorite_destination=cities.most_common(1)[0][0] if cities else None,
        busiest_month=calendar.month_name[months.most_common(1)[0][0]] if months else None,
        longest_trip=longest.title if longest else None,
        longest_trip_days=lengths[longest.id] if longest else 0,
        travel_style=travel_style(activity_count / total_days if total_days else 0.0),
    )

"""
Worker loop that generates itineraries for queued jobs.

Each job fills the empty slots of a trip with restaurants, cafes and
attractions near its city, reporting progress on the job record so the
API can be polled.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from backend.db import ActivityRow, Database, JobRecord, TripRow
from backend.dependencies import get_db, get_places_provider, get_queue_client
from backend.queue import JobQueue
from backend.services.activities import next_order
from backend.services.trips import trip_activities
from itinerary.planner import (
    ExistingActivity,
    PlannedActivity,
    is_already_planned,
    plan_itinerary,
)
from itinerary.places import PlacesLookupError, PlacesProvider
from shared.types import JobStatus

logger = logging.getLogger(__name__)

STALE_LOCK_SECONDS = 900
SAVE_PROGRESS_START = 0.7
SAVE_PROGRESS_END = 0.95


def _save(db: Database, trip_id: int, planned: PlannedActivity) -> None:
    with db.session() as session:
        session.add(
            ActivityRow(
                trip_id=trip_id,
                title=planned.title,
                date=planned.date,
                time=planned.time,
                location_name=planned.location_name,
                latitude=planned.latitude,
                longitude=planned.longitude,
                notes=planned.notes,
                tag=planned.tag,
                order=next_order(session, trip_id, planned.date),
            )
        )


def process_job(job: JobRecord, db: Database, places: PlacesProvider) -> None:
    """
    Process a single claimed job.

    Missing trips and cities without places end the job in ERROR with a
    stage naming the reason. Unexpected failures mark the job ERROR and are
    re-raised for the supervisor.
    """
    try:
        with db.session() as session:
            trip = session.get(TripRow, job.trip_id)
            existing = (
                [
                    ExistingActivity(date=a.date, title=a.title, tag=a.tag)
                    for a in trip_activities(session, trip.id)
                ]
                if trip
                else []
            )
        if not trip:
            db.update_job_progress(
                job.job_id,
                status=JobStatus.ERROR,
                stage="TRIP_NOT_FOUND",
                progress_percent=1.0,
                message="Trip not found",
            )
            logger.warning("[%s] Trip %s not found", job.job_id, job.trip_id)
            return

        if is_already_planned(trip.start_date, trip.end_date, existing):
            db.update_job_progress(
                job.job_id,
                status=JobStatus.SUCCESS,
                stage="SKIPPED",
                progress_percent=1.0,
                activities_created=0,
                message="Trip already has a full itinerary",
            )
            return

        db.update_job_progress(
            job.job_id, stage="FETCHING_PLACES", progress_percent=0.1
        )
        try:
            city_places = places.find_places(trip.city or "", trip.country)
        except PlacesLookupError as e:
            logger.warning("[%s] Places lookup failed: %s", job.job_id, e)
            db.update_job_progress(
                job.job_id,
                status=JobStatus.ERROR,
                stage="PLACES_UNAVAILABLE",
                progress_percent=1.0,
                message="Place data is temporarily unavailable",
            )
            return
        if city_places.is_empty():
            db.update_job_progress(
                job.job_id,
                status=JobStatus.ERROR,
                stage="NO_PLACES",
                progress_percent=1.0,
                message=f"No places found for {trip.city or 'this trip'}",
            )
            return

        db.update_job_progress(job.job_id, stage="PLANNING", progress_percent=0.4)
        planned = plan_itinerary(trip.start_date, trip.end_date, existing, city_places)
        logger.info("[%s] Planned %d activities", job.job_id, len(planned))

        db.update_job_progress(
            job.job_id, stage="SAVING", progress_percent=SAVE_PROGRESS_START
        )
        span = SAVE_PROGRESS_END - SAVE_PROGRESS_START
        for index, activity in enumerate(planned, start=1):
            _save(db, trip.id, activity)
            db.update_job_progress(
                job.job_id,
                progress_percent=round(
                    SAVE_PROGRESS_START + span * index / len(planned), 4
                ),
                activities_created=index,
            )

        db.update_job_progress(
            job.job_id,
            status=JobStatus.SUCCESS,
            stage="SUCCESS",
            progress_percent=1.0,
            activities_created=len(planned),
            message=f"Added {len(planned)} activities",
        )
    except Exception:
        logger.exception("[%s] Itinerary generation failed", job.job_id)
        db.update_job_progress(
            job.job_id,
            status=JobStatus.ERROR,
            stage="ERROR",
            progress_percent=0.0,
            message="Itinerary generation failed",
        )
        raise


def process_next(
    *,
    db: Optional[Database] = None,
    queue: Optional[JobQueue] = None,
    places: Optional[PlacesProvider] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and process one job from the queue (or DB fallback). Returns True if processed.
    """
    db = db or get_db()
    queue = queue or get_queue_client()
    places = places or get_places_provider()

    job_id = queue.dequeue(block=block, timeout=timeout)
    if job_id:
        job = db.claim_job(job_id)
        if not job:
            logger.warning("Job %s is missing or already claimed", job_id)
            return False
    else:
        # Jobs that were never queued (e.g. queue outage) are picked up here.
        job = db.claim_next_waiting_job()
        if not job:
            return False

    process_job(job, db, places)
    return True


def run_loop(poll_interval_seconds: float = 2.0) -> None:
    """
    Blocking loop over the queue. Intended to be run under systemd/supervisor.
    """
    db = get_db()
    queue = get_queue_client()
    places = get_places_provider()
    while True:
        requeued = db.requeue_stale_locks(lock_timeout_seconds=STALE_LOCK_SECONDS)
        if requeued:
            logger.info("Requeued %d stale jobs", requeued)
        try:
            processed = process_next(
                db=db,
                queue=queue,
                places=places,
                block=True,
                timeout=int(poll_interval_seconds),
            )
        except Exception:
            # Already recorded on the job; keep serving the queue.
            processed = True
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_loop()

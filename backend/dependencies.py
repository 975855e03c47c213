"""
Dependency wiring for the FastAPI app.

Every integration falls back to an in-memory implementation when it is not
configured (or when in-memory backends are forced), so the API runs locally
without external services.
"""

from __future__ import annotations

from backend.card_issuer import CardIssuer, InMemoryCardIssuer, StripeCardIssuer
from backend.config import get_settings
from backend.db import IN_MEMORY_URL, Database
from backend.flights_client import (
    DuffelFlightProvider,
    FlightProvider,
    InMemoryFlightProvider,
)
from backend.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from backend.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from itinerary.geocoding import Geocoder, InMemoryGeocoder, NominatimGeocoder
from itinerary.places import (
    InMemoryPlacesProvider,
    OverpassPlacesProvider,
    PlacesProvider,
)

_db: Database | None = None
_storage_client: StorageClient | None = None
_queue_client: JobQueue | None = None
_flight_provider: FlightProvider | None = None
_card_issuer: CardIssuer | None = None
_geocoder: Geocoder | None = None
_places_provider: PlacesProvider | None = None


def get_db() -> Database:
    """
    Return a singleton database so state persists across requests.
    """
    global _db
    if _db:
        return _db

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db = Database(IN_MEMORY_URL)
    else:
        _db = Database(settings.database_url)
    return _db


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.s3_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint,
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            addressing_style=settings.s3_addressing_style,
        )
    return _storage_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching jobs to workers.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_flight_provider() -> FlightProvider:
    global _flight_provider
    if _flight_provider:
        return _flight_provider

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.duffel_api_key:
        _flight_provider = InMemoryFlightProvider()
    else:
        _flight_provider = DuffelFlightProvider(
            api_key=settings.duffel_api_key, base_url=settings.duffel_base_url
        )
    return _flight_provider


def get_card_issuer() -> CardIssuer:
    global _card_issuer
    if _card_issuer:
        return _card_issuer

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.stripe_api_key:
        _card_issuer = InMemoryCardIssuer()
    else:
        _card_issuer = StripeCardIssuer(
            api_key=settings.stripe_api_key,
            billing_address=settings.issuing_billing_address,
        )
    return _card_issuer


def get_geocoder() -> Geocoder:
    global _geocoder
    if _geocoder:
        return _geocoder

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.nominatim_user_agent:
        _geocoder = InMemoryGeocoder()
    else:
        _geocoder = NominatimGeocoder(user_agent=settings.nominatim_user_agent)
    return _geocoder


def get_places_provider() -> PlacesProvider:
    global _places_provider
    if _places_provider:
        return _places_provider

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.overpass_url:
        _places_provider = InMemoryPlacesProvider()
    else:
        _places_provider = OverpassPlacesProvider(url=settings.overpass_url)
    return _places_provider

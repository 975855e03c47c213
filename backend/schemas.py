"""
Pydantic schemas for the travel-planning API.
"""

from __future__ import annotations

from datetime import date
from typing import Any, ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared.types import Plan, Role

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
IATA_PATTERN = r"^[A-Za-z]{3}$"

TripType = Literal["personal", "business"]
SharePermission = Literal["read-only", "edit"]
CollaboratorRole = Literal["viewer", "editor"]
CardInterval = Literal["daily", "weekly", "monthly", "yearly"]
CabinClass = Literal["economy", "premium_economy", "business", "first"]


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PartialUpdate(BaseModel):
    """
    Body of a partial update: fields may be omitted, but the ones named in
    `not_null` may not be sent as null.
    """

    not_null: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            nulls = [name for name in cls.not_null if name in data and data[name] is None]
            if nulls:
                raise ValueError(f"Fields may not be null: {', '.join(nulls)}")
        return data


class StatusResponse(BaseModel):
    status: Literal["ok"] = "ok"
    message: Optional[str] = None


# Trips


class TripCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    start_date: date
    end_date: date
    city: Optional[str] = Field(default=None, max_length=120)
    country: Optional[str] = Field(default=None, max_length=120)
    location: Optional[str] = None
    city_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    city_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    trip_type: TripType = "personal"
    client_name: Optional[str] = None
    project_type: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    is_public: bool = False


class TripUpdate(PartialUpdate):
    not_null = (
        "title",
        "start_date",
        "end_date",
        "trip_type",
        "completed",
        "is_public",
    )

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    city: Optional[str] = None
    country: Optional[str] = None
    location: Optional[str] = None
    city_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    city_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    trip_type: Optional[TripType] = None
    client_name: Optional[str] = None
    project_type: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    completed: Optional[bool] = None
    is_public: Optional[bool] = None


class TripResponse(OrmModel):
    id: int
    user_id: int
    organization_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    city: Optional[str] = None
    country: Optional[str] = None
    location: Optional[str] = None
    city_latitude: Optional[float] = None
    city_longitude: Optional[float] = None
    trip_type: str
    client_name: Optional[str] = None
    project_type: Optional[str] = None
    budget: Optional[float] = None
    completed: bool
    is_public: bool
    sharing_enabled: bool
    share_code: Optional[str] = None
    share_permission: str
    hotel_name: Optional[str] = None
    hotel_address: Optional[str] = None
    hotel_latitude: Optional[float] = None
    hotel_longitude: Optional[float] = None
    created_at: float
    updated_at: float


class CorporateTripResponse(TripResponse):
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class ShareSettingsUpdate(BaseModel):
    sharing_enabled: bool
    share_permission: Optional[SharePermission] = None


class ShareSettingsResponse(BaseModel):
    trip_id: int
    sharing_enabled: bool
    share_code: Optional[str] = None
    share_permission: str


class HotelRequest(BaseModel):
    hotel_name: str = Field(..., min_length=1, max_length=200)
    hotel_address: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class CollaboratorCreate(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    name: Optional[str] = None
    role: CollaboratorRole = "viewer"


class CollaboratorUpdate(PartialUpdate):
    not_null = ("role",)

    name: Optional[str] = None
    role: Optional[CollaboratorRole] = None


class CollaboratorResponse(OrmModel):
    id: int
    trip_id: int
    user_id: Optional[int] = None
    email: str
    name: Optional[str] = None
    role: str
    status: str
    created_at: float


# Activities


class ActivityCreate(BaseModel):
    trip_id: int
    title: str = Field(..., min_length=1, max_length=200)
    date: date
    time: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)
    location_name: Optional[str] = Field(default=None, max_length=300)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    notes: Optional[str] = None
    tag: Optional[str] = Field(default=None, max_length=50)
    assigned_to: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)
    travel_mode: Optional[str] = None


class ActivityUpdate(PartialUpdate):
    not_null = ("title", "date", "order", "completed")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    date: Optional[date] = None
    time: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)
    location_name: Optional[str] = Field(default=None, max_length=300)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    notes: Optional[str] = None
    tag: Optional[str] = Field(default=None, max_length=50)
    assigned_to: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)
    travel_mode: Optional[str] = None
    completed: Optional[bool] = None


class ActivityResponse(OrmModel):
    id: int
    trip_id: int
    title: str
    date: date
    time: Optional[str] = None
    location_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    tag: Optional[str] = None
    assigned_to: Optional[str] = None
    order: int
    travel_mode: Optional[str] = None
    completed: bool


class ActivityOrderUpdate(BaseModel):
    order: int = Field(..., ge=0)


class ActivityCompleteUpdate(BaseModel):
    completed: Optional[bool] = None


class ParseActivityRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)
    reference_date: Optional[date] = None


class ParsedActivityResponse(BaseModel):
    title: str
    location_name: str
    time: str
    date: date
    time_is_flexible: bool


class NaturalActivityRequest(BaseModel):
    trip_id: int
    text: str = Field(..., min_length=1, max_length=500)


class ItineraryActivity(ActivityResponse):
    distance_from_previous_km: Optional[float] = None


class ItineraryDay(BaseModel):
    date: date
    activities: list[ItineraryActivity]
    total_distance_km: float


class ItineraryResponse(BaseModel):
    trip_id: int
    days: list[ItineraryDay]


class SharedTripResponse(BaseModel):
    trip: TripResponse
    activities: list[ActivityResponse]


class HotelResponse(BaseModel):
    trip: TripResponse
    activities: list[ActivityResponse]


# AI


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str = Field(..., max_length=8000)


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    trip_id: Optional[int] = None


class SuggestedActivityOut(BaseModel):
    title: str
    date: Optional[str] = None
    time: Optional[str] = None
    location_name: Optional[str] = None
    notes: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class TripSuggestionOut(BaseModel):
    title: str
    description: Optional[str] = None
    start_date: str
    end_date: str
    city: str
    country: Optional[str] = None
    activities: list[SuggestedActivityOut] = Field(default_factory=list)


class ChatResponse(BaseModel):
    success: bool
    message: str
    trip_suggestion: Optional[TripSuggestionOut] = None


class FindLocationRequest(BaseModel):
    search_query: str = Field(default="", max_length=300)
    city_context: Optional[str] = Field(default=None, max_length=200)


class LocationResult(BaseModel):
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class FindLocationResponse(BaseModel):
    success: bool
    search_query: str
    city_context: Optional[str] = None
    locations: list[LocationResult]


class SuggestActivitiesRequest(BaseModel):
    trip_id: int
    interests: list[str] = Field(default_factory=list)
    count: int = Field(default=5, ge=1, le=10)


class ActivitySuggestion(BaseModel):
    title: str
    time: Optional[str] = None
    location_name: Optional[str] = None
    notes: Optional[str] = None
    tag: Optional[str] = None


class SuggestActivitiesResponse(BaseModel):
    success: bool
    suggestions: list[ActivitySuggestion]


class ItineraryJobRequest(BaseModel):
    trip_id: int


class ItineraryJobResponse(BaseModel):
    job_id: str
    trip_id: int
    status: str
    stage: Optional[str] = None
    progress_percent: Optional[float] = None
    activities_created: int = 0
    message: Optional[str] = None


# Analytics


class AnalyticsOverview(BaseModel):
    total_trips: int
    total_users: int
    total_activities: int
    average_trip_length: float
    average_activities_per_trip: float


class DestinationStat(BaseModel):
    city: str
    country: Optional[str] = None
    trip_count: int
    percentage: float


class DurationBucket(BaseModel):
    duration: str
    count: int
    percentage: float


class TagStat(BaseModel):
    tag: str
    count: int
    percentage: float


class UserEngagement(BaseModel):
    users_with_trips: int
    users_with_activities: int
    trip_completion_rate: float
    activity_completion_rate: float


class RecentActivity(BaseModel):
    new_trips_last_7_days: int
    new_activities_last_7_days: int
    new_users_last_7_days: int


class GrowthPoint(BaseModel):
    week_start: date
    trips: int
    users: int
    activities: int


class UserFunnel(BaseModel):
    total_users: int
    users_with_trips: int
    users_with_activities: int
    users_with_completed_trips: int


class AnalyticsResponse(BaseModel):
    scope: str
    overview: AnalyticsOverview
    destinations: list[DestinationStat]
    trip_durations: list[DurationBucket]
    activity_tags: list[TagStat]
    user_engagement: UserEngagement
    recent_activity: RecentActivity
    growth_metrics: list[GrowthPoint]
    user_funnel: UserFunnel


class YearInTravelResponse(BaseModel):
    year: int
    total_trips: int
    total_days: int
    total_activities: int
    countries: list[str]
    cities: list[str]
    favorite_destination: Optional[str] = None
    busiest_month: Optional[str] = None
    longest_trip: Optional[str] = None
    longest_trip_days: int = 0
    travel_style: str


# Templates


class TemplateActivity(BaseModel):
    day: int = Field(..., ge=1)
    title: str
    time: Optional[str] = Field(default=None, pattern=CLOCK_PATTERN)
    location_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    tag: Optional[str] = None


class TemplateCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(default=0.0, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    cover_image: Optional[str] = None
    destinations: list[str] = Field(default_factory=list)
    duration: int = Field(default=1, ge=1, le=365)
    tags: list[str] = Field(default_factory=list)
    activities: list[TemplateActivity] = Field(default_factory=list)


class TemplateUpdate(PartialUpdate):
    not_null = ("title", "price", "destinations", "duration", "tags", "activities")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    cover_image: Optional[str] = None
    destinations: Optional[list[str]] = None
    duration: Optional[int] = Field(default=None, ge=1, le=365)
    tags: Optional[list[str]] = None
    activities: Optional[list[TemplateActivity]] = None


class TemplateFromTripRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    price: float = Field(default=0.0, ge=0)
    tags: list[str] = Field(default_factory=list)


class TemplateResponse(OrmModel):
    id: int
    user_id: int
    title: str
    slug: str
    description: Optional[str] = None
    price: float
    currency: str
    cover_image: Optional[str] = None
    destinations: list[str]
    duration: int
    tags: list[str]
    trip_data: dict
    status: str
    moderation_status: str
    rejection_reason: Optional[str] = None
    sales_count: int
    view_count: int
    created_at: float


class TemplateDetailResponse(TemplateResponse):
    has_purchased: bool = False


class TemplateSummary(OrmModel):
    id: int
    title: str
    slug: str
    price: float
    duration: int
    destinations: list[str]


class TemplatePurchaseRequest(BaseModel):
    start_date: Optional[date] = None


class TemplatePurchaseResponse(BaseModel):
    purchase_id: int
    template_id: int
    trip_id: int
    price: float
    platform_fee: float
    seller_earnings: float


# Bundles

BundleType = Literal["creator", "curated", "seasonal"]
BundleStatus = Literal["draft", "published", "archived"]


class BundleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    template_ids: list[int] = Field(..., min_length=1)
    bundle_price: float = Field(..., ge=0)
    cover_image: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    type: BundleType = "creator"
    featured: bool = False
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    max_sales: Optional[int] = Field(default=None, ge=1)


class BundleUpdate(PartialUpdate):
    not_null = ("title", "template_ids", "bundle_price", "tags", "featured")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    template_ids: Optional[list[int]] = Field(default=None, min_length=1)
    bundle_price: Optional[float] = Field(default=None, ge=0)
    cover_image: Optional[str] = None
    tags: Optional[list[str]] = None
    featured: Optional[bool] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    max_sales: Optional[int] = Field(default=None, ge=1)


class BundlePublishRequest(BaseModel):
    status: BundleStatus


class BundleResponse(OrmModel):
    id: int
    creator_id: int
    title: str
    slug: str
    description: Optional[str] = None
    template_ids: list[int]
    bundle_price: float
    original_price: float
    discount_percentage: float
    cover_image: Optional[str] = None
    tags: list[str]
    type: str
    featured: bool
    status: str
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    max_sales: Optional[int] = None
    sales_count: int
    view_count: int
    created_at: float
    templates: list[TemplateSummary] = Field(default_factory=list)
    savings: float = 0.0
    has_purchased: Optional[bool] = None


class BundlePurchaseResponse(BaseModel):
    purchase_id: int
    bundle_id: int
    price: float
    platform_fee: float
    creator_earnings: float
    card_fee: float
    template_ids: list[int]


# Corporate cards and expenses


class CardIssueRequest(BaseModel):
    user_email: str = Field(..., pattern=EMAIL_PATTERN)
    spend_limit: float = Field(..., ge=10)
    interval: CardInterval = "monthly"
    cardholder_name: str = Field(..., min_length=1, max_length=120)
    purpose: Optional[str] = None
    department: Optional[str] = None
    allowed_categories: list[str] = Field(default_factory=list)
    blocked_categories: list[str] = Field(default_factory=list)


class CardUpdateRequest(PartialUpdate):
    not_null = (
        "spend_limit",
        "interval",
        "status",
        "allowed_categories",
        "blocked_categories",
    )

    spend_limit: Optional[float] = Field(default=None, ge=10)
    interval: Optional[CardInterval] = None
    status: Optional[Literal["active", "inactive", "canceled"]] = None
    purpose: Optional[str] = None
    department: Optional[str] = None
    allowed_categories: Optional[list[str]] = None
    blocked_categories: Optional[list[str]] = None


class CardFreezeRequest(BaseModel):
    freeze: bool


class CardResponse(OrmModel):
    id: int
    organization_id: int
    user_id: int
    last4: str
    cardholder_name: str
    spend_limit: float
    interval: str
    status: str
    purpose: Optional[str] = None
    department: Optional[str] = None
    allowed_categories: list[str]
    blocked_categories: list[str]
    current_spend: float
    currency: str
    created_at: float


class CardsResponse(BaseModel):
    cards: list[CardResponse]


class TransactionResponse(OrmModel):
    id: int
    card_id: int
    amount: float
    currency: str
    merchant_name: Optional[str] = None
    merchant_category: Optional[str] = None
    created_at: float


class TransactionsResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: int


class ExpenseCreate(BaseModel):
    card_id: Optional[int] = None
    trip_id: Optional[int] = None
    merchant_name: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., ge=1)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    transaction_date: date
    expense_category: str = Field(..., min_length=1, max_length=80)
    description: Optional[str] = None
    business_purpose: Optional[str] = None
    receipt_url: Optional[str] = None
    billable_to_client: bool = False
    project_code: Optional[str] = None


class ExpenseResponse(OrmModel):
    id: int
    organization_id: Optional[int] = None
    user_id: int
    card_id: Optional[int] = None
    trip_id: Optional[int] = None
    merchant_name: str
    amount: float
    currency: str
    transaction_date: date
    expense_category: str
    description: Optional[str] = None
    business_purpose: Optional[str] = None
    receipt_url: Optional[str] = None
    billable_to_client: bool
    project_code: Optional[str] = None
    status: str
    approval_status: str
    approved_by: Optional[int] = None
    approved_at: Optional[float] = None
    approved_amount: Optional[float] = None
    rejection_reason: Optional[str] = None
    created_at: float


class ExpensesResponse(BaseModel):
    expenses: list[ExpenseResponse]
    total: int


class ExpenseApproveRequest(BaseModel):
    expense_id: int
    status: Literal["approved", "rejected"]
    comments: Optional[str] = None
    approved_amount: Optional[float] = Field(default=None, ge=0)


class SpendBreakdownItem(BaseModel):
    key: str
    label: Optional[str] = None
    total: float
    count: int


class SpendAnalyticsResponse(BaseModel):
    total_spend: float
    expense_count: int
    average_expense: float
    by_category: list[SpendBreakdownItem]
    by_card: list[SpendBreakdownItem]
    by_user: list[SpendBreakdownItem]
    pending_approvals: int


# Flights


class PassengerCounts(BaseModel):
    adults: int = Field(default=1, ge=1, le=9)
    children: int = Field(default=0, ge=0, le=8)
    infants: int = Field(default=0, ge=0, le=8)


class FlightSearchRequest(BaseModel):
    origin: str = Field(..., pattern=IATA_PATTERN)
    destination: str = Field(..., pattern=IATA_PATTERN)
    departure_date: date
    return_date: Optional[date] = None
    passengers: PassengerCounts = Field(default_factory=PassengerCounts)
    cabin_class: CabinClass = "economy"


class FlightPrice(BaseModel):
    amount: float
    currency: Optional[str] = None


class FlightSegment(BaseModel):
    flight_number: str
    airline: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    departure_datetime: Optional[str] = None
    arrival_datetime: Optional[str] = None
    duration_minutes: Optional[int] = None
    aircraft: Optional[str] = None


class FlightSlice(BaseModel):
    origin: Optional[str] = None
    destination: Optional[str] = None
    departure_datetime: Optional[str] = None
    arrival_datetime: Optional[str] = None
    duration_minutes: Optional[int] = None
    segments: list[FlightSegment]


class FlightOffer(BaseModel):
    id: str
    price: FlightPrice
    airline: Optional[str] = None
    expires_at: Optional[str] = None
    slices: list[FlightSlice]
    passengers: list[dict]
    conditions: dict


class FlightSearchResponse(BaseModel):
    offers: list[FlightOffer]


class BookingPassenger(BaseModel):
    title: Literal["mr", "ms", "mrs", "miss", "dr"]
    given_name: str = Field(..., min_length=1, max_length=80)
    family_name: str = Field(..., min_length=1, max_length=80)
    born_on: date
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone_number: str = Field(..., min_length=10, max_length=20)
    gender: Literal["M", "F"]


class BookingRequest(BaseModel):
    offer_id: str = Field(..., min_length=1)
    trip_id: Optional[int] = None
    passengers: list[BookingPassenger] = Field(..., min_length=1, max_length=9)


class BookingResponse(OrmModel):
    id: int
    user_id: int
    trip_id: Optional[int] = None
    provider_order_id: str
    offer_id: str
    booking_reference: Optional[str] = None
    status: str
    total_amount: float
    currency: str
    passengers: list[dict]
    slices: list[dict]
    created_at: float


class BookingsResponse(BaseModel):
    bookings: list[BookingResponse]


class CancelBookingResponse(BaseModel):
    booking: BookingResponse
    refund_amount: float
    refund_currency: Optional[str] = None


class Airport(BaseModel):
    iata_code: str
    name: str
    city: Optional[str] = None
    country: Optional[str] = None


class AirportSearchResponse(BaseModel):
    airports: list[Airport]
    fallback: bool = False


# White-label


class BrandConfig(BaseModel):
    company_name: str
    tagline: Optional[str] = None
    primary_color: str
    secondary_color: str
    accent_color: str
    logo_url: Optional[str] = None


class WhiteLabelConfigResponse(BaseModel):
    is_white_label_active: bool
    config: BrandConfig


class ThemeResponse(BaseModel):
    is_white_label_active: bool
    variables: dict[str, str]
    css: str


class WhiteLabelPermissionsResponse(BaseModel):
    can_access_white_label: bool
    current_plan: str
    white_label_enabled: bool
    upgrade_required: bool
    limitations: list[str]


class WhiteLabelConfigureRequest(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    tagline: Optional[str] = Field(default=None, max_length=200)
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    custom_domain: Optional[str] = None
    support_email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)


class WhiteLabelSettingsResponse(OrmModel):
    organization_id: int
    company_name: str
    tagline: Optional[str] = None
    primary_color: str
    secondary_color: str
    accent_color: str
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    custom_domain: Optional[str] = None
    support_email: Optional[str] = None
    status: str


class WhiteLabelConfigureResponse(BaseModel):
    success: bool
    settings: WhiteLabelSettingsResponse


class PlanRequest(BaseModel):
    plan: Plan


class OrganizationPlanResponse(BaseModel):
    organization_id: int
    plan: str
    white_label_enabled: bool


class OnboardingStatusResponse(BaseModel):
    plan_eligible: bool
    branding_configured: bool
    logo_uploaded: bool
    domain_configured: bool
    completed_steps: int
    total_steps: int
    is_complete: bool


# Proposals


class ProposalRequest(BaseModel):
    client_name: str = Field(..., min_length=1, max_length=200)
    contact_email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    contact_phone: Optional[str] = None
    contact_website: Optional[str] = None
    message: Optional[str] = Field(default=None, max_length=5000)


class ProposalResponse(BaseModel):
    proposal_id: int
    trip_id: int
    client_name: str
    url: str
    estimated_cost: float
    cost_breakdown: dict[str, float]
    valid_until: date
    created_at: float


# Admin


class TemplateStats(BaseModel):
    total: int
    published: int
    pending: int


class UserStats(BaseModel):
    total: int
    creators: int
    verified: int


class SalesStats(BaseModel):
    total_sales: int
    total_revenue: float
    total_platform_fees: float


class AdminStatsResponse(BaseModel):
    templates: TemplateStats
    users: UserStats
    sales: SalesStats


class UserResponse(OrmModel):
    id: int
    email: str
    display_name: Optional[str] = None
    role: str
    organization_id: Optional[int] = None
    is_creator: bool
    creator_verified: bool
    suspended: bool
    created_at: float


class UsersResponse(BaseModel):
    users: list[UserResponse]
    total: int


class SuspendRequest(BaseModel):
    suspended: bool = True


class RoleUpdateRequest(BaseModel):
    role: Role


class RejectTemplateRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    domain: Optional[str] = None
    plan: Plan = Plan.FREE


class OrganizationUpdate(PartialUpdate):
    not_null = ("name",)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    domain: Optional[str] = None


class OrganizationResponse(OrmModel):
    id: int
    name: str
    domain: Optional[str] = None
    plan: str
    white_label_enabled: bool
    created_at: float


class DashboardResponse(BaseModel):
    organizations: int
    users: int
    trips: int
    activities: int
    active_cards: int
    plans: dict[str, int]

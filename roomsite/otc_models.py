"""
Schemas for data exchanged with the Off The Couch (OTC) console API.

Upstream JSON is validated into these models at the client boundary before
any business logic sees it. Fields the site does not rely on are kept as
extras so the proxy routes can pass provider data through unchanged.

Application-level shapes derived from upstream data (availability, activity,
gift card balance) live at the bottom of the module.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="allow")


# ────────────────────────────────────────────────────────────────
# Shared / nested
# ────────────────────────────────────────────────────────────────

class CompanyGroup(_UpstreamModel):
    id: int
    name: str = ""
    code: str = ""


class Difficulty(_UpstreamModel):
    level: float = 3
    name: Optional[str] = None


class PricingCategory(_UpstreamModel):
    id: int
    name: str = ""
    price: float = 0
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    description: Optional[str] = None


class Pagination(_UpstreamModel):
    total_count: int = 0
    has_more: bool = False
    next_offset: Optional[int] = None


# ────────────────────────────────────────────────────────────────
# Games
# ────────────────────────────────────────────────────────────────

class Game(_UpstreamModel):
    id: int
    name: str
    description: Optional[str] = ""
    min_players: Optional[int] = None
    min_players_count: Optional[int] = None
    max_players: Optional[int] = None
    max_players_count: Optional[int] = None
    duration: Optional[int] = None
    duration_minutes: Optional[int] = None
    difficulty: Union[Difficulty, float, None] = None
    is_public: Optional[int] = None
    deposit_required: Optional[int] = None
    deposit_amount: Optional[float] = None
    pricing_type: Optional[str] = None
    image_url: Optional[str] = None
    company_group: Optional[CompanyGroup] = None
    pricing_categories: list[PricingCategory] = Field(default_factory=list)
    total_bookings: Optional[int] = None
    archived: Optional[int] = None
    position: Optional[int] = None

    @field_validator("pricing_categories", mode="before")
    @classmethod
    def _null_categories(cls, value: Any) -> Any:
        return value or []


class GamesPage(_UpstreamModel):
    games: list[Game] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


# ────────────────────────────────────────────────────────────────
# Bookings
# ────────────────────────────────────────────────────────────────

class Booking(_UpstreamModel):
    """
    One row of GET /bookings.

    Schedule-generated placeholder slots and real customer reservations share
    this shape; ``bookings.is_real_booking`` tells them apart.
    """
    id: int
    booking_date: str = ""
    end_date: Optional[str] = None
    start_time: str = ""
    end_time: str = ""
    status: Optional[str] = None
    group_size: int = 0
    price: Optional[float] = None
    total: Optional[float] = None
    created_at: Optional[str] = None
    game_id: Optional[int] = None
    game_name: Optional[str] = None
    company_group_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    transaction_id: Optional[int] = None
    order_number: Optional[str] = None

    @field_validator("group_size", mode="before")
    @classmethod
    def _coerce_group_size(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        return value

    @field_validator("booking_date", "start_time", "end_time", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _status_to_text(cls, value: Any) -> Any:
        # POST /bookings rows come back with a numeric status
        if isinstance(value, int):
            return str(value)
        return value


class BookingsPage(_UpstreamModel):
    bookings: list[Booking] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


# ────────────────────────────────────────────────────────────────
# Gift cards
# ────────────────────────────────────────────────────────────────

class GiftCard(_UpstreamModel):
    id: int
    code: str
    amount: Optional[float] = None
    balance: float = 0
    status: str = ""
    purchased_date: Optional[str] = None
    activation_date: Optional[str] = None
    expiration_date: Optional[str] = None
    purchaser_email: Optional[str] = None
    transaction_id: Optional[int] = None


class GiftCardsPage(_UpstreamModel):
    gift_cards: list[GiftCard] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


# ────────────────────────────────────────────────────────────────
# Application-level shapes
# ────────────────────────────────────────────────────────────────

class Timeslot(BaseModel):
    booking_slot_id: Optional[int] = None
    start_time: str
    end_time: str
    available: bool
    price: Optional[float] = None
    pricing_type: Optional[str] = None


class GameAvailability(BaseModel):
    game_id: int
    game_name: str
    date: str
    timeslots: list[Timeslot] = Field(default_factory=list)
    total_slots: int = 0
    available_slots: int = 0


class GameActivity(BaseModel):
    game_id: int
    recent_bookings: int
    viewers_count: int
    activity_message: str
    is_simulated: bool = True


class GiftCardBalance(BaseModel):
    code: str
    balance: float
    status: str
    expiration_date: Optional[str] = None

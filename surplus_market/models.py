from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from enum import Enum
from typing import Optional


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    USER = "user"
    RESTAURANT = "restaurant"


class ListingType(str, Enum):
    MYSTERY_BOX = "mystery_box"
    REVEAL = "reveal"


class OrderStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


@dataclass(slots=True)
class User:
    id: str
    name: str
    email: str
    role: UserRole = UserRole.USER
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_restaurant(self) -> bool:
        return self.role == UserRole.RESTAURANT


@dataclass(slots=True)
class Restaurant:
    id: str
    owner_id: str
    name: str
    address: str
    lat: float
    lng: float
    closing_time: Optional[time] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class Listing:
    """
    Предложение ресторана. Цена в минимальных единицах валюты (int),
    сток никогда не уходит ниже нуля.
    """

    id: str
    restaurant_id: str
    type: ListingType
    description: str
    price: int
    stock: int = 0
    name: Optional[str] = None
    photo_url: str = ""
    pickup_time: Optional[time] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_mystery_box(self) -> bool:
        return self.type == ListingType.MYSTERY_BOX

    def has_stock(self, qty: int) -> bool:
        return self.stock >= qty


@dataclass(slots=True)
class Order:
    """
    Заказ. После создания меняется только status: qty и total_price
    зафиксированы по цене листинга на момент покупки.
    """

    id: str
    user_id: str
    listing_id: str
    qty: int
    total_price: int
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, status: OrderStatus) -> bool:
        # pending/ready -> любой статус; completed/cancelled -> никуда
        return not self.is_terminal

"""
Value types copied into a group buy at creation time.

A group keeps its own copy of the leader and product details so that later
changes to the customer profile or to the product price never alter an
existing group.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class LeaderSnapshot:
    customer_id: str
    name: str = ''
    phone: str = ''


@dataclass(frozen=True)
class ProductSnapshot:
    id: str
    name: str
    regular_price: Decimal
    group_price: Decimal
    banner: str = ''
    weight: str = ''
    category: str = ''

    @property
    def unit_saving(self) -> Decimal:
        return self.regular_price - self.group_price


@dataclass(frozen=True)
class ParticipantSnapshot:
    customer_id: str
    name: str = ''
    phone: str = ''
    quantity: int = 1

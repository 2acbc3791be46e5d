from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

from pydantic import BaseModel


class OfferType(str, Enum):
    FLATX = "FLATX"
    FLAT_PERCENT = "FLAT%"
    FLATP = "FLATP"

    @property
    def is_percentage(self) -> bool:
        return self in (OfferType.FLAT_PERCENT, OfferType.FLATP)


SUPPORTED_OFFER_TYPES = [t.value for t in OfferType]


@dataclass(frozen=True)
class Offer:
    restaurant_id: int
    offer_type: OfferType
    offer_value: int
    segments: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "restaurant_id": self.restaurant_id,
            "offer_type": self.offer_type.value,
            "offer_value": self.offer_value,
            "customer_segment": list(self.segments),
        }


class OfferKey(NamedTuple):
    restaurant_id: int
    segment: str


# HTTP schemas. Defaults mirror an absent JSON field so the coordinator,
# not pydantic, decides what is invalid.

class OfferRequest(BaseModel):
    restaurant_id: int = 0
    offer_type: Optional[str] = None
    offer_value: int = 0
    customer_segment: Optional[List[str]] = None


class ApplyOfferRequest(BaseModel):
    user_id: int = 0
    restaurant_id: int = 0
    cart_value: int = 0


class ApiResponse(BaseModel):
    response_msg: str


class ApplyOfferResponse(BaseModel):
    cart_value: int


class OfferOut(BaseModel):
    restaurant_id: int
    offer_type: str
    offer_value: int
    customer_segment: List[str]


class OfferListResponse(BaseModel):
    offers: List[OfferOut]

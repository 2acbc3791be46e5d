from typing import List, Optional

from offerengine.discount import apply_discount
from offerengine.errors import UpstreamUnavailable, ValidationError
from offerengine.logging_config import get_logger
from offerengine.metrics import OFFERS_APPLIED, SEGMENT_LOOKUPS
from offerengine.models import (
    SUPPORTED_OFFER_TYPES,
    ApplyOfferRequest,
    Offer,
    OfferRequest,
    OfferType,
)
from offerengine.segments import SegmentResolver
from offerengine.store import OfferStore

logger = get_logger(__name__)


class OfferCoordinator:
    """Entry point for offer registration and cart pricing.

    Validation happens before any store mutation. Once a pricing request
    is valid it always yields a cart value: segment lookup failures fall
    back to the undiscounted cart.
    """

    def __init__(self, store: OfferStore, resolver: SegmentResolver):
        self.store = store
        self.resolver = resolver

    def register_offer(self, request: Optional[OfferRequest]) -> bool:
        offer = build_offer(request)
        added = self.store.register(offer)
        if added:
            logger.info(
                "offer_registered",
                restaurant_id=offer.restaurant_id,
                offer_type=offer.offer_type.value,
                offer_value=offer.offer_value,
                segments=list(offer.segments),
            )
        else:
            logger.info(
                "offer_ignored",
                restaurant_id=offer.restaurant_id,
                segments=list(offer.segments),
            )
        return added

    def price_cart(self, request: Optional[ApplyOfferRequest]) -> int:
        validate_apply_request(request)
        cart_value = request.cart_value
        log = logger.bind(
            user_id=request.user_id,
            restaurant_id=request.restaurant_id,
            cart_value=cart_value,
        )

        segment = self._resolve_segment(request.user_id)
        if segment is None:
            log.info("no_segment")
            return cart_value

        offer = self.store.lookup(request.restaurant_id, segment)
        if offer is None:
            log.info("no_matching_offer", segment=segment)
            return cart_value

        final_value = apply_discount(cart_value, offer)
        OFFERS_APPLIED.labels(offer.offer_type.value).inc()
        log.info(
            "offer_applied",
            segment=segment,
            offer_type=offer.offer_type.value,
            offer_value=offer.offer_value,
            final_cart_value=final_value,
        )
        return final_value

    def list_offers(self) -> List[Offer]:
        return self.store.list_all()

    def clear_offers(self) -> None:
        self.store.clear_all()

    def _resolve_segment(self, user_id: int) -> Optional[str]:
        try:
            segment = self.resolver.resolve_segment(user_id)
        except UpstreamUnavailable as exc:
            SEGMENT_LOOKUPS.labels("failed").inc()
            logger.warning("segment_lookup_failed", user_id=user_id, error=str(exc))
            return None
        except Exception:
            # any resolver fault degrades to an undiscounted cart
            SEGMENT_LOOKUPS.labels("failed").inc()
            logger.warning("segment_lookup_failed", user_id=user_id, exc_info=True)
            return None
        SEGMENT_LOOKUPS.labels("hit" if segment is not None else "miss").inc()
        return segment


def build_offer(request: Optional[OfferRequest]) -> Offer:
    """Validate a registration request and turn it into an Offer."""
    if request is None:
        raise ValidationError("Offer request cannot be null")
    if request.restaurant_id <= 0:
        raise ValidationError("Restaurant ID must be positive")
    if request.offer_type is None or not request.offer_type.strip():
        raise ValidationError("Offer type cannot be null or empty")
    offer_type = request.offer_type.strip()
    if offer_type not in SUPPORTED_OFFER_TYPES:
        raise ValidationError(
            f"Unsupported offer type: {offer_type}. Supported types: {', '.join(SUPPORTED_OFFER_TYPES)}"
        )
    if request.offer_value < 0:
        raise ValidationError("Offer value cannot be negative")
    if not request.customer_segment:
        raise ValidationError("Customer segments cannot be null or empty")

    return Offer(
        restaurant_id=request.restaurant_id,
        offer_type=OfferType(offer_type),
        offer_value=request.offer_value,
        segments=tuple(dict.fromkeys(request.customer_segment)),
    )


def validate_apply_request(request: Optional[ApplyOfferRequest]) -> None:
    if request is None:
        raise ValidationError("Apply offer request cannot be null")
    if request.user_id <= 0:
        raise ValidationError("User ID must be positive")
    if request.restaurant_id <= 0:
        raise ValidationError("Restaurant ID must be positive")
    if request.cart_value < 0:
        raise ValidationError("Cart value cannot be negative")

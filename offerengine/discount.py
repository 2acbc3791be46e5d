from typing import Optional

from offerengine.models import Offer, OfferType


def apply_discount(cart_value: int, offer: Optional[Offer]) -> int:
    """Return the cart value after applying ``offer``.

    FLATX takes ``offer_value`` off the cart. FLAT% and FLATP take
    ``offer_value`` percent off and truncate the discounted total, so
    133 at 15% is 113 and 3 at 50% is 1. The result is not clamped and
    may be negative.
    """
    if offer is None:
        return cart_value
    if offer.offer_type is OfferType.FLATX:
        return cart_value - offer.offer_value
    if offer.offer_type.is_percentage:
        return _truncated_remainder(cart_value, offer.offer_value)
    return cart_value


def _truncated_remainder(value: int, percent: int) -> int:
    # trunc(value - value * percent / 100) in integer math, toward zero
    kept = value * (100 - percent)
    if kept >= 0:
        return kept // 100
    return -(-kept // 100)

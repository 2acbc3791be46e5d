import threading
from typing import Dict, List, Optional

from offerengine.logging_config import get_logger
from offerengine.models import Offer, OfferKey

logger = get_logger(__name__)


class OfferStore:
    """In-memory registry of offers keyed by (restaurant_id, segment).

    The first offer registered for a key keeps it; later registrations
    for the same key are dropped. Keys are filled independently, so an
    offer spanning several segments may win some keys and lose others.
    """

    def __init__(self):
        self._offers: Dict[OfferKey, Offer] = {}
        self._lock = threading.Lock()

    def register(self, offer: Offer) -> bool:
        added = False
        for segment in offer.segments:
            key = OfferKey(offer.restaurant_id, segment)
            with self._lock:
                inserted = key not in self._offers
                if inserted:
                    self._offers[key] = offer
            if inserted:
                added = True
                logger.info("offer_key_added", restaurant_id=offer.restaurant_id, segment=segment)
            else:
                logger.info("offer_key_occupied", restaurant_id=offer.restaurant_id, segment=segment)
        return added

    def lookup(self, restaurant_id: int, segment: str) -> Optional[Offer]:
        return self._offers.get(OfferKey(restaurant_id, segment))

    def list_all(self) -> List[Offer]:
        with self._lock:
            values = list(self._offers.values())
        # dict.fromkeys keeps first-seen order while dropping repeats
        return list(dict.fromkeys(values))

    def clear_all(self) -> None:
        logger.info("offers_cleared")
        with self._lock:
            self._offers.clear()

    def count(self) -> int:
        return len(self._offers)

import threading

from offerengine.models import Offer, OfferType
from offerengine.store import OfferStore


def _offer(restaurant_id=101, value=10, segments=("p1",), offer_type=OfferType.FLATX):
    return Offer(restaurant_id=restaurant_id, offer_type=offer_type, offer_value=value, segments=tuple(segments))


def test_register_and_lookup():
    s = OfferStore()
    o = _offer()
    assert s.register(o) is True
    assert s.lookup(101, "p1") == o
    assert s.lookup(101, "p2") is None
    assert s.lookup(102, "p1") is None


def test_first_registration_wins():
    s = OfferStore()
    first, second = _offer(value=10), _offer(value=30)
    assert s.register(first) is True
    assert s.register(second) is False
    assert s.lookup(101, "p1").offer_value == 10


def test_partial_registration_across_segments():
    s = OfferStore()
    s.register(_offer(value=10, segments=["p1"]))
    multi = _offer(value=20, segments=["p1", "p2"])
    assert s.register(multi) is True
    assert s.lookup(101, "p1").offer_value == 10
    assert s.lookup(101, "p2") is multi


def test_same_offer_registered_twice_is_not_new():
    s = OfferStore()
    o = _offer()
    assert s.register(o) is True
    assert s.register(o) is False


def test_multi_segment_offer_listed_once():
    s = OfferStore()
    multi = _offer(segments=["p1", "p2", "p3"])
    other = _offer(restaurant_id=202)
    s.register(multi)
    s.register(other)
    offers = s.list_all()
    assert len(offers) == 2
    assert set(offers) == {multi, other}
    assert s.count() == 4


def test_lookup_is_exact_match():
    s = OfferStore()
    o = _offer(segments=["p1"])
    s.register(o)
    assert s.lookup(101, "P1") is None
    assert s.lookup(101, " p1") is None
    assert s.lookup(101, "") is None
    assert s.lookup(101, "p1") is o


def test_clear_all():
    s = OfferStore()
    s.register(_offer(segments=["p1", "p2"]))
    s.clear_all()
    assert s.lookup(101, "p1") is None
    assert s.list_all() == []
    assert s.count() == 0
    assert s.register(_offer(value=99)) is True
    assert s.lookup(101, "p1").offer_value == 99


def test_concurrent_registration_single_winner():
    s = OfferStore()
    offers = [_offer(value=v) for v in range(50)]
    results = []
    barrier = threading.Barrier(len(offers))

    def worker(o):
        barrier.wait()
        results.append(s.register(o))

    threads = [threading.Thread(target=worker, args=(o,)) for o in offers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert s.lookup(101, "p1") in offers
    assert s.count() == 1


def test_concurrent_registration_disjoint_keys():
    s = OfferStore()
    offers = [_offer(restaurant_id=r) for r in range(1, 41)]
    threads = [threading.Thread(target=s.register, args=(o,)) for o in offers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert s.count() == 40
    assert all(s.lookup(o.restaurant_id, "p1") is o for o in offers)

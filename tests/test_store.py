from datetime import timedelta

import pytest

from usdc_pay.payments.exceptions import InvalidAmountError, InvalidRequestError, NotFoundError
from usdc_pay.payments.models import (
    CHAIN_BASE,
    CHAIN_SOLANA,
    STATUS_CONFIRMED,
    STATUS_EXPIRED,
    STATUS_PENDING,
)

from .conftest import BASE_WALLET, SOLANA_WALLET


def test_create_defaults(store, clock):
    request = store.create(CHAIN_BASE, BASE_WALLET, "5.00")

    assert request.status == STATUS_PENDING
    assert request.amount == "5.00"
    assert len(request.payment_id) == 16
    assert request.memo == f"pay-{request.payment_id}"
    assert request.created_at == clock.now
    assert request.expires_at - request.created_at == timedelta(minutes=30)
    assert request.confirmed_tx_hash is None


def test_create_keeps_amount_text_verbatim(store):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1.1234567")
    assert request.amount == "1.1234567"


def test_create_uses_given_memo_and_window(store):
    request = store.create(CHAIN_SOLANA, SOLANA_WALLET, "1", memo="order-42", expires_in_minutes=5)
    assert request.memo == "order-42"
    assert request.expires_at - request.created_at == timedelta(minutes=5)


def test_ids_are_unique(store):
    ids = {store.create(CHAIN_BASE, BASE_WALLET, "1").payment_id for _ in range(50)}
    assert len(ids) == 50


@pytest.mark.parametrize("amount", ["0", "-1", "abc", "1000000.01"])
def test_create_rejects_bad_amounts(store, amount):
    with pytest.raises(InvalidAmountError):
        store.create(CHAIN_BASE, BASE_WALLET, amount)


def test_create_rejects_unknown_chain_and_negative_window(store):
    with pytest.raises(NotFoundError):
        store.create("bitcoin", BASE_WALLET, "1")
    with pytest.raises(InvalidRequestError):
        store.create(CHAIN_BASE, BASE_WALLET, "1", expires_in_minutes=-1)


def test_get_unknown_raises(store):
    with pytest.raises(NotFoundError):
        store.get("missing")


def test_zero_window_expires_on_next_read(store, clock):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1", expires_in_minutes=0)
    clock.advance(microseconds=1)
    assert store.get(request.payment_id).status == STATUS_EXPIRED


def test_lazy_expiry_without_writes(store, clock):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1", expires_in_minutes=10)
    clock.advance(minutes=9, seconds=59)
    assert store.get(request.payment_id).status == STATUS_PENDING
    clock.advance(seconds=1)
    assert store.get(request.payment_id).status == STATUS_EXPIRED


def test_expired_is_terminal(store, clock):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1", expires_in_minutes=1)
    clock.advance(minutes=2)
    assert store.get(request.payment_id).status == STATUS_EXPIRED
    clock.now = request.created_at
    assert store.get(request.payment_id).status == STATUS_EXPIRED


def test_confirm_sets_hash_and_time(store, clock):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1")
    clock.advance(minutes=1)
    confirmed = store.confirm(request.payment_id, "0xabc")

    assert confirmed.status == STATUS_CONFIRMED
    assert confirmed.confirmed_tx_hash == "0xabc"
    assert confirmed.confirmed_at == clock.now

    clock.advance(hours=2)
    assert store.get(request.payment_id).status == STATUS_CONFIRMED


def test_second_confirm_overwrites_hash(store):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1")
    store.confirm(request.payment_id, "0xfirst")
    store.confirm(request.payment_id, "0xsecond")
    assert store.get(request.payment_id).confirmed_tx_hash == "0xsecond"


def test_confirm_unknown_raises(store):
    with pytest.raises(NotFoundError):
        store.confirm("missing", "0xabc")


def test_snapshots_do_not_leak_state(store):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1")
    request.status = STATUS_CONFIRMED
    assert store.get(request.payment_id).status == STATUS_PENDING


def test_list_orders_newest_first_and_filters(store, clock):
    first = store.create(CHAIN_BASE, BASE_WALLET, "1")
    clock.advance(seconds=1)
    second = store.create(CHAIN_SOLANA, SOLANA_WALLET, "2")
    clock.advance(seconds=1)
    third = store.create(CHAIN_BASE, BASE_WALLET, "3")
    store.confirm(third.payment_id, "0xabc")

    assert [r.payment_id for r in store.list()] == [
        third.payment_id,
        second.payment_id,
        first.payment_id,
    ]
    assert [r.payment_id for r in store.list(chain=CHAIN_BASE)] == [third.payment_id, first.payment_id]
    assert [r.payment_id for r in store.list(status=STATUS_CONFIRMED)] == [third.payment_id]
    assert [r.payment_id for r in store.list(status=STATUS_PENDING, chain=CHAIN_SOLANA)] == [
        second.payment_id
    ]


def test_pending_list_never_contains_expired(store, clock):
    short = store.create(CHAIN_BASE, BASE_WALLET, "1", expires_in_minutes=1)
    long = store.create(CHAIN_BASE, BASE_WALLET, "1", expires_in_minutes=60)
    clock.advance(minutes=1)

    pending = store.list(status=STATUS_PENDING)
    assert [r.payment_id for r in pending] == [long.payment_id]
    assert [r.payment_id for r in store.list(status=STATUS_EXPIRED)] == [short.payment_id]


def test_list_rejects_unknown_status(store):
    with pytest.raises(InvalidRequestError):
        store.list(status="refunded")


def test_confirm_leaves_expired_request_expired(store, clock):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1", expires_in_minutes=1)
    clock.advance(minutes=5)

    result = store.confirm(request.payment_id, "0xlate")

    assert result.status == STATUS_EXPIRED
    assert result.confirmed_tx_hash is None
    assert store.get(request.payment_id).status == STATUS_EXPIRED


def test_confirm_expires_without_prior_read(store, clock):
    request = store.create(CHAIN_BASE, BASE_WALLET, "1", expires_in_minutes=1)
    clock.advance(minutes=1)
    assert store.confirm(request.payment_id, "0xlate").status == STATUS_EXPIRED

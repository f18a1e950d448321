import threading
from datetime import datetime, timedelta, timezone

import pytest

from catalog_auth.exceptions import OtpError, OtpFailure
from catalog_auth.infrastructure.otp.memory_otp_store import (
    InMemoryOTPStore, fixed_code_generator, numeric_code_generator,
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_store(clock=None):
    return InMemoryOTPStore(ttl_seconds=300, code_generator=fixed_code_generator("1234"),
                            clock=clock or FakeClock())


def test_issue_returns_receipt_with_five_minute_expiry():
    clock = FakeClock()
    store = make_store(clock)
    issued = store.issue("9876543210")
    assert issued.mobile == "9876543210"
    assert issued.code == "1234"
    assert issued.expires_at == clock.now + timedelta(minutes=5)


def test_mismatch_does_not_consume_code():
    store = make_store()
    store.issue("9876543210")
    with pytest.raises(OtpError) as exc:
        store.verify_and_consume("9876543210", "0000")
    assert exc.value.reason is OtpFailure.MISMATCH
    store.verify_and_consume("9876543210", "1234")


def test_code_can_only_be_consumed_once():
    store = make_store()
    store.issue("9876543210")
    store.verify_and_consume("9876543210", "1234")
    with pytest.raises(OtpError) as exc:
        store.verify_and_consume("9876543210", "1234")
    assert exc.value.reason is OtpFailure.NOT_FOUND


def test_unknown_mobile_is_not_found():
    store = make_store()
    with pytest.raises(OtpError) as exc:
        store.verify_and_consume("9000000000", "1234")
    assert exc.value.reason is OtpFailure.NOT_FOUND


def test_code_expires_after_window():
    clock = FakeClock()
    store = make_store(clock)
    store.issue("9876543210")
    clock.advance(minutes=5, seconds=1)
    with pytest.raises(OtpError) as exc:
        store.verify_and_consume("9876543210", "1234")
    assert exc.value.reason is OtpFailure.EXPIRED


def test_code_valid_at_exact_expiry_instant():
    clock = FakeClock()
    store = make_store(clock)
    store.issue("9876543210")
    clock.advance(minutes=5)
    store.verify_and_consume("9876543210", "1234")


def test_new_request_overwrites_pending_code():
    codes = iter(["1111", "2222"])
    store = InMemoryOTPStore(code_generator=lambda: next(codes), clock=FakeClock())
    store.issue("9876543210")
    store.issue("9876543210")
    with pytest.raises(OtpError) as exc:
        store.verify_and_consume("9876543210", "1111")
    assert exc.value.reason is OtpFailure.MISMATCH
    store.verify_and_consume("9876543210", "2222")


def test_concurrent_consumption_succeeds_exactly_once():
    store = InMemoryOTPStore(code_generator=fixed_code_generator("1234"))
    store.issue("9876543210")
    workers = 16
    barrier = threading.Barrier(workers)
    successes, failures = [], []

    def attempt():
        barrier.wait()
        try:
            store.verify_and_consume("9876543210", "1234")
            successes.append(True)
        except OtpError as e:
            failures.append(e.reason)

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(successes) == 1
    assert failures == [OtpFailure.NOT_FOUND] * (workers - 1)


def test_purge_expired_removes_only_stale_records():
    clock = FakeClock()
    store = make_store(clock)
    store.issue("9000000001")
    clock.advance(minutes=4)
    store.issue("9000000002")
    clock.advance(minutes=2)
    assert store.purge_expired() == 1
    assert len(store) == 1
    store.verify_and_consume("9000000002", "1234")


def test_numeric_code_generator_format():
    generate = numeric_code_generator(6)
    codes = {generate() for _ in range(50)}
    assert all(len(c) == 6 and c.isdigit() for c in codes)
    assert len(codes) > 1


def test_issue_reclaims_abandoned_records():
    clock = FakeClock()
    store = make_store(clock)
    for i in range(100):
        store.issue(f"90000{i:05d}")
    assert len(store) == 100
    clock.advance(days=1)
    store.issue("9876543210")
    assert len(store) == 1
    store.verify_and_consume("9876543210", "1234")
    assert len(store) == 0


def test_receipt_expires_in_follows_store_clock():
    clock = FakeClock()
    store = make_store(clock)
    issued = store.issue("9876543210")
    assert issued.expires_in == 300
    assert issued.expires_at - clock.now == timedelta(seconds=issued.expires_in)

"""Tests for MessageStore queries and numpy series extraction."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))
sys.path.insert(0, os.path.dirname(__file__))

import struct

import numpy as np

from dflog import parse_bytes
from dflog.decoder import LogRecord
from dflog.store import MessageStore

from logbuild import pack_format, pack_record


def make_test_log():
    buf = pack_format(1, 3 + 8 + 4 + 2, "ATT", "Qfh", "TimeUS,Roll,DesYaw")
    buf += pack_format(2, 3 + 8 + 2 + 4, "BAT", "QHn", "TimeUS,MilliV,Tag")
    buf += pack_format(3, 3 + 4, "EV", "B", "Id")
    buf += pack_record(1, struct.pack("<Qfh", 1000, 1.5, -10))
    buf += pack_record(2, struct.pack("<QH4s", 1500, 12600, b"B1"))
    buf += pack_record(3, struct.pack("<B", 7))
    buf += pack_record(1, struct.pack("<Qfh", 2000, 2.5, 20))
    buf += pack_record(2, struct.pack("<QH4s", 2500, 12500, b"B1"))
    buf += pack_record(1, struct.pack("<Qfh", 3000, -0.5, 30))
    return buf


def test_arrival_order_and_buckets():
    log = parse_bytes(make_test_log())
    store = log.store

    assert len(store) == 6
    assert [r.type_name for r in store.all()] == \
        ["ATT", "BAT", "EV", "ATT", "BAT", "ATT"]
    assert [r["TimeUS"] for r in store.by_type("ATT")] == [1000, 2000, 3000]
    assert store.count("BAT") == 2
    assert store.count("GPS") == 0
    assert store.by_type("GPS") == []
    assert store.type_names() == ["ATT", "BAT", "EV"]
    assert [r.type_name for r in store] == [r.type_name for r in store.all()]


def test_query_results_are_copies():
    store = parse_bytes(make_test_log()).store
    store.all().clear()
    store.by_type("ATT").clear()
    assert len(store) == 6
    assert store.count("ATT") == 3


def test_time_range():
    store = parse_bytes(make_test_log()).store
    assert store.time_range() == (1000, 3000)
    assert MessageStore().time_range() is None


def test_time_range_ignores_untimed_records():
    store = MessageStore()
    store.append(LogRecord("EV", {"Id": 1}))
    assert store.time_range() is None
    store.append(LogRecord("X", {"TimeUS": 5}, timestamp=5))
    assert store.time_range() == (5, 5)


def test_series_float():
    store = parse_bytes(make_test_log()).store
    ts, roll = store.series("ATT", "Roll")
    assert isinstance(ts, np.ndarray)
    assert ts.dtype == np.int64
    assert roll.dtype == np.float32
    np.testing.assert_array_equal(ts, [1000, 2000, 3000])
    np.testing.assert_allclose(roll, [1.5, 2.5, -0.5])


def test_series_integer_dtypes():
    store = parse_bytes(make_test_log()).store
    _, yaw = store.series("ATT", "DesYaw")
    assert yaw.dtype == np.int16
    np.testing.assert_array_equal(yaw, [-10, 20, 30])

    ts, mv = store.series("BAT", "MilliV")
    assert mv.dtype == np.uint16
    np.testing.assert_array_equal(ts, [1500, 2500])
    np.testing.assert_array_equal(mv, [12600, 12500])


def test_series_text_field():
    store = parse_bytes(make_test_log()).store
    _, tags = store.series("BAT", "Tag")
    assert tags.dtype == object
    assert list(tags) == ["B1", "B1"]


def test_series_signed_time_us():
    buf = pack_format(1, 11, "ATT", "if", "TimeUS,Roll")
    buf += pack_record(1, struct.pack("<if", -5, 1.0))
    buf += pack_record(1, struct.pack("<if", 10, 2.0))
    store = parse_bytes(buf).store

    ts, roll = store.series("ATT", "Roll")
    assert ts.dtype == np.int64
    np.testing.assert_array_equal(ts, [-5, 10])
    np.testing.assert_allclose(roll, [1.0, 2.0])
    assert store.time_range() == (-5, 10)


def test_series_skips_untimed_and_missing():
    store = parse_bytes(make_test_log()).store
    ts, ids = store.series("EV", "Id")
    assert len(ts) == 0
    assert len(ids) == 0

    ts, vals = store.series("ATT", "NoSuchField")
    assert len(ts) == 0
    assert len(vals) == 0

    ts, vals = store.series("GPS", "Lat")
    assert len(ts) == 0


if __name__ == "__main__":
    print("dflog store tests")
    print("=================\n")

    for name, fn in list(globals().items()):
        if name.startswith("test_") and callable(fn):
            print(f"{name}...", end="")
            fn()
            print(" OK")

    print("\nAll tests passed.")

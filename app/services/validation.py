import math
from typing import Any

from app.core.errors import InvalidSampleError, MissingMacError, MissingSamplesError
from app.models.telemetry import MEASUREMENT_FIELDS, TelemetryBatch


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    # ints beyond float range overflow in isfinite
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _check_sample(index: int, sample: Any) -> None:
    if not isinstance(sample, dict):
        raise InvalidSampleError(index, "ts", "must be inside an object")

    ts = sample.get("ts")
    if not _is_number(ts) or not _is_finite(ts):
        raise InvalidSampleError(index, "ts", "must be a finite number")
    if ts <= 0 or ts != int(ts):
        raise InvalidSampleError(index, "ts", "must be a positive integer")

    for field in MEASUREMENT_FIELDS:
        value = sample.get(field)
        if value is None:
            continue
        if not _is_number(value):
            raise InvalidSampleError(index, field, "must be numeric")
        if not _is_finite(value):
            raise InvalidSampleError(index, field, "must be finite")


def validate_batch(payload: Any) -> TelemetryBatch:
    """Check a decoded payload and build a TelemetryBatch from it.

    Rules are applied in order and the first failure is raised:
    missing or empty ``mac``, ``data`` missing or not a list, then
    per-sample timestamp and measurement checks. An empty ``data`` list
    is accepted and MAC addresses are taken exactly as given.
    """
    if not isinstance(payload, dict):
        raise MissingMacError()

    mac = payload.get("mac")
    if not isinstance(mac, str) or not mac:
        raise MissingMacError()

    samples = payload.get("data")
    if not isinstance(samples, list):
        raise MissingSamplesError()

    for index, sample in enumerate(samples):
        _check_sample(index, sample)

    return TelemetryBatch(
        mac=mac,
        data=[{**sample, "ts": int(sample["ts"])} for sample in samples],
    )

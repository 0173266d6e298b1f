from datetime import datetime, timedelta
from typing import Optional

import pytz


IST = pytz.timezone("Asia/Kolkata")

# timestamp formats seen in courier tracking payloads
COURIER_DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d-%m-%Y %H:%M:%S",  # With seconds
    "%d-%m-%Y %H:%M",  # Without seconds
    "%d-%m-%Y %H:%M:%S.%f",  # With milliseconds
    "%d %b %Y %H:%M",
    "%d-%b-%Y %H:%M",
    "%d %m %Y %H:%M:%S",
    "%d%m%Y %H%M",
    "%d%m%Y %H%M%S",
]


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def convert_ist_to_utc(input_time: datetime) -> datetime:
    """Treat a naive datetime as IST and return it in UTC."""
    if input_time.tzinfo is None:
        input_time = IST.localize(input_time)

    return input_time.astimezone(pytz.utc)


def parse_courier_datetime(value) -> Optional[datetime]:
    """
    Parse a courier timestamp (IST unless it carries an offset) into UTC.

    Epoch milliseconds are accepted as well. Returns None for empty or
    unparseable values; a bad timestamp never fails a tracking call.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return convert_ist_to_utc(value)

    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=pytz.utc)

    value = str(value).strip()

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            return parsed.astimezone(pytz.utc)
    except ValueError:
        pass

    for fmt in COURIER_DATETIME_FORMATS:
        try:
            return convert_ist_to_utc(datetime.strptime(value, fmt))
        except ValueError:
            continue

    return None


def expiry_from_seconds(seconds, now: Optional[datetime] = None) -> datetime:
    now = now or utc_now()
    return now + timedelta(seconds=float(seconds))

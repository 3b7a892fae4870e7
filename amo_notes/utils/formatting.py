# amo_notes/utils/formatting.py

from datetime import datetime
from typing import Union

from dateutil import tz
from dateutil.parser import parse

NOTE_DATETIME_FORMAT = "%d.%m.%Y %H:%M:%S"


def format_timestamp(value: Union[int, float, str, datetime], timezone: str = "UTC") -> str:
    """
    Render a webhook timestamp as dd.mm.YYYY HH:MM:SS in the given timezone.
    Accepts unix seconds (also as a numeric string), ISO strings or datetimes.
    Raises ValueError when the value cannot be understood.
    """
    zone = tz.gettz(timezone)
    if zone is None:
        raise ValueError(f"Unknown timezone: {timezone}")

    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a timestamp: {value!r}")

    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, (int, float)):
        moment = datetime.fromtimestamp(value, tz=tz.UTC)
    else:
        text = str(value).strip()
        try:
            moment = datetime.fromtimestamp(float(text), tz=tz.UTC)
        except ValueError:
            moment = parse(text)

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz.UTC)
    return moment.astimezone(zone).strftime(NOTE_DATETIME_FORMAT)

# foodmandu/core/clock.py
# Текущее время в UTC без tzinfo, в таком виде даты хранятся в БД.
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

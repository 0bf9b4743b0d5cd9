from __future__ import annotations

import secrets
import string
from datetime import UTC, date, datetime

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 9


def new_id() -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


def utc_now_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


def noon_timestamp(day: date) -> str:
    # Entries recorded against a calendar day are stamped at midday UTC.
    return f"{day.isoformat()}T12:00:00Z"

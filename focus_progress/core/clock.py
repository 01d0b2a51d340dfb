from datetime import date, datetime, timezone


def server_today() -> date:
    """The server's calendar date (UTC). Authoritative for merge branching."""
    return datetime.now(tz=timezone.utc).date()


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)

"""Login activity bucketed by calendar day."""

from collections import Counter

from errors import EmptyStore
from models import DailyLoginCount

LOGIN_ACTION = "login"


def active_users_per_day(store):
    """Count ``login`` log entries per date across every record, ascending by date.

    Several logins by one user on the same day all count.
    """
    records = store.all()
    if not records:
        raise EmptyStore()

    per_day = Counter(
        entry.day
        for record in records
        for entry in record.logs
        if entry.action == LOGIN_ACTION
    )
    return [DailyLoginCount(day=day, total=total) for day, total in sorted(per_day.items())]

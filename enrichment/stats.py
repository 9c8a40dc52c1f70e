from typing import Iterable, List, Optional, Set

from models import AttendanceStats, Record


def normalize_email(record: Record) -> Optional[str]:
    # Participant reports carry `user_email`; registrants carry `email`.
    value = record.get("email") or record.get("user_email")
    if not isinstance(value, str):
        return None
    value = value.strip().lower()
    return value or None


def attended_emails(participants: Iterable[Record]) -> Set[str]:
    return {email for email in map(normalize_email, participants) if email}


def find_no_shows(registrants: List[Record], participants: List[Record]) -> List[Record]:
    """Registrants whose email never shows up among participants, in registrant order."""
    attended = attended_emails(participants)
    return [r for r in registrants if normalize_email(r) not in attended]


def attendance_rate(total_participants: int, total_registrants: int) -> int:
    if total_registrants <= 0:
        return 0
    # Half-up rounding of participants / registrants * 100, in integers.
    return (200 * total_participants + total_registrants) // (2 * total_registrants)


def compute_stats(registrants: List[Record], participants: List[Record], no_shows: List[Record]) -> AttendanceStats:
    return AttendanceStats(
        total_registrants=len(registrants),
        total_participants=len(participants),
        no_shows_count=len(no_shows),
        attendance_rate_percent=attendance_rate(len(participants), len(registrants)),
    )

from __future__ import annotations

from dataclasses import dataclass

from roombooking.application.ports.directory import UserDirectoryPort
from roombooking.domain.entities.booking import Booking
from roombooking.domain.entities.user import User


@dataclass(frozen=True)
class Host:
    user: User


@dataclass(frozen=True)
class OrganizerEmail:
    email: str


@dataclass(frozen=True)
class Anonymous:
    pass


HostIdentity = Host | OrganizerEmail | Anonymous


def resolve_host(booking: Booking, users: UserDirectoryPort) -> HostIdentity:
    """
    Host user if the booking has one, else the organizer address from the
    calendar (matched to a directory user when possible), else walk-up.
    """
    if booking.host_user_id:
        user = users.get_user(booking.host_user_id)
        if user is not None:
            return Host(user)
    if booking.organizer_email:
        user = users.find_by_email(booking.organizer_email)
        if user is not None:
            return Host(user)
        return OrganizerEmail(booking.organizer_email)
    return Anonymous()


def display_name(identity: HostIdentity) -> str | None:
    if isinstance(identity, Host):
        return identity.user.name or identity.user.email
    if isinstance(identity, OrganizerEmail):
        return identity.email
    if isinstance(identity, Anonymous):
        return None
    raise TypeError(f"Unknown host identity: {identity!r}")


def normalize_attendees(emails: list[str] | tuple[str, ...], organizer: str | None) -> tuple[str, ...]:
    """Trim, dedupe case-insensitively (first spelling wins) and drop the organizer."""
    seen: set[str] = set()
    if organizer:
        seen.add(organizer.strip().lower())
    result: list[str] = []
    for email in emails:
        cleaned = (email or "").strip()
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return tuple(result)

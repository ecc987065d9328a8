import re

from .models import Attendee

_SEPARATOR_RE = re.compile(r"[\n,;]")
_STUDENT_ID_RE = re.compile(r"^(?P<name>.+?)\s*[\(\[]\s*(?P<student_id>[A-Za-z0-9\-]+)\s*[\)\]]$")
_WHITESPACE_RE = re.compile(r"\s+")

DEFAULT_CREATOR_LABEL = "Me (Booker)"


def parse_attendee_entry(entry: str) -> Attendee:
    cleaned = _WHITESPACE_RE.sub(" ", entry).strip()
    if not cleaned:
        raise ValueError("attendee entry must not be empty")

    match = _STUDENT_ID_RE.match(cleaned)
    if match:
        return Attendee(name=match.group("name"), student_id=match.group("student_id"), is_companion=True)
    return Attendee(name=cleaned, is_companion=True)


def parse_attendee_text(text: str | None, creator_name: str | None = None) -> tuple[Attendee, ...]:
    """Turn free text (one companion per line or comma) into a structured attendee list.

    The creator's own entry always comes first and duplicate companions are
    dropped, so ``"Ann, Bob\\nAnn"`` yields three attendees.
    """
    creator = Attendee(name=(creator_name or "").strip() or DEFAULT_CREATOR_LABEL, is_companion=False)

    companions: list[Attendee] = []
    seen: set[str] = set()
    for raw in _SEPARATOR_RE.split(text or ""):
        if not raw.strip():
            continue
        attendee = parse_attendee_entry(raw)
        key = attendee.name.casefold()
        if key in seen:
            continue
        seen.add(key)
        companions.append(attendee)

    return (creator, *companions)


def ensure_creator_entry(attendees: list[Attendee], creator_name: str | None = None) -> tuple[Attendee, ...]:
    """Prepend a creator entry when a structured list arrives without one."""
    if any(not attendee.is_companion for attendee in attendees):
        return tuple(attendees)
    creator = Attendee(name=(creator_name or "").strip() or DEFAULT_CREATOR_LABEL, is_companion=False)
    return (creator, *attendees)

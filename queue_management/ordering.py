"""
Queue ordering rules

Pure functions over entry-like objects (anything with ``priority``,
``created_at`` and ``booking_number``). No database or cache access happens
here; services.py feeds these functions with rows read under the queue lock
and persists what they return.
"""
from django.conf import settings

from queue_management.models import TherapyType

DEFAULT_SLOT_MINUTES = {
    TherapyType.SHODHANA.value: 30,  # Purification therapies
    TherapyType.SHAMANA.value: 20,  # Palliative therapies
    TherapyType.RASAYANA.value: 25,  # Rejuvenation therapies
    TherapyType.VAJIKARANA.value: 25,  # Aphrodisiac therapies
}
FALLBACK_SLOT_MINUTES = 20


def active_sort_key(entry):
    """Higher priority first, then earlier arrival, then lower booking number"""
    return (-entry.priority, entry.created_at, entry.booking_number)


def sort_active(entries):
    return sorted(entries, key=active_sort_key)


def insertion_position(active_entries, priority):
    """
    1-based position for a new entry with the given priority.

    The new entry goes in front of the first entry with a strictly lower
    priority, so it lands behind everyone of equal priority who arrived
    earlier. With no such entry it is appended.
    """
    ordered = sort_active(active_entries)
    for index, entry in enumerate(ordered):
        if priority > entry.priority:
            return index + 1
    return len(ordered) + 1


def positions_after_insert(active_entries, position):
    """
    Positions of the existing entries once a newcomer takes ``position``:
    everyone from that index onward moves down one slot.
    """
    ordered = sort_active(active_entries)
    return [
        (entry, index + 1 if index + 1 < position else index + 2)
        for index, entry in enumerate(ordered)
    ]


def dense_ranking(active_entries):
    """Pair every active entry with its dense 1..N position"""
    return [(entry, index + 1) for index, entry in enumerate(sort_active(active_entries))]


def is_densely_ranked(active_entries):
    """True when positions are exactly 1..N and agree with the sort order"""
    return all(entry.position == position for entry, position in dense_ranking(active_entries))


class WaitTimeEstimator:
    """
    Linear wait model: position times the per-slot duration of the therapy.
    Durations can be overridden per therapy type with
    ``THERAPY_QUEUE["SLOT_MINUTES"]`` and ``THERAPY_QUEUE["DEFAULT_SLOT_MINUTES"]``.
    """

    def __init__(self, slot_minutes=None, default_minutes=None):
        queue_settings = getattr(settings, "THERAPY_QUEUE", {})
        self.slot_minutes = dict(DEFAULT_SLOT_MINUTES)
        self.slot_minutes.update(queue_settings.get("SLOT_MINUTES", {}))
        if slot_minutes:
            self.slot_minutes.update(slot_minutes)
        if default_minutes is None:
            default_minutes = queue_settings.get("DEFAULT_SLOT_MINUTES", FALLBACK_SLOT_MINUTES)
        self.default_minutes = default_minutes

    def per_slot_minutes(self, therapy_type):
        return self.slot_minutes.get(str(therapy_type), self.default_minutes)

    def estimate(self, position, therapy_type):
        if not position:
            return 0
        return position * self.per_slot_minutes(therapy_type)

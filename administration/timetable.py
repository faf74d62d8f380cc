from datetime import time
import logging

logger = logging.getLogger(__name__)

DAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday']

DEFAULT_OPENING = time(7, 0)
DEFAULT_CLOSING = time(18, 0)
DEFAULT_INTERVAL = 30


def to_minutes(value):
    """Accepts a ``datetime.time`` or an ``HH:MM`` string."""
    if isinstance(value, str):
        hours, minutes = value.split(':')[:2]
        return int(hours) * 60 + int(minutes)
    return value.hour * 60 + value.minute


def format_minutes(minutes):
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def slot_minutes(start, end):
    return to_minutes(end) - to_minutes(start)


def slots_between(start, end, interval=DEFAULT_INTERVAL):
    begin = to_minutes(start)
    finish = to_minutes(end)
    return [format_minutes(m) for m in range(begin, finish, interval)]


def generate_time_slots(hours=None, interval=DEFAULT_INTERVAL):
    """
    Start times of the teaching slots for one day.

    ``hours`` is a configured ``SchoolHours`` row (or None when the day is
    not configured, in which case the whole 07:00-18:00 range is used).
    Morning runs from opening to the morning break, afternoon from the end
    of the afternoon break to closing.
    """
    if hours is None:
        return slots_between(DEFAULT_OPENING, DEFAULT_CLOSING, interval)

    slots = slots_between(hours.opening, hours.morning_break_start or hours.closing, interval)
    if hours.afternoon_break_end:
        slots.extend(slots_between(hours.afternoon_break_end, hours.closing, interval))
    return slots


def generate_week_slots(hours_by_day, interval=DEFAULT_INTERVAL):
    return {day: generate_time_slots(hours_by_day.get(day), interval) for day in DAYS}


def overlaps(first, second):
    if first.day != second.day:
        return False
    return (to_minutes(first.start_time) < to_minutes(second.end_time)
            and to_minutes(second.start_time) < to_minutes(first.end_time))


def find_conflicts(slot, others):
    """Slots in ``others`` sharing the teacher or the class of ``slot`` and overlapping it."""
    conflicts = []
    for other in others:
        if slot.pk and other.pk == slot.pk:
            continue
        same_teacher = other.teacher_id == slot.teacher_id
        same_class = other.school_class_id == slot.school_class_id
        if (same_teacher or same_class) and overlaps(slot, other):
            conflicts.append(other)
    return conflicts


def weekly_grid(slots):
    grid = {day: [] for day in DAYS}
    for slot in slots:
        grid.setdefault(slot.day, []).append(slot)
    for day_slots in grid.values():
        day_slots.sort(key=lambda s: to_minutes(s.start_time))
    return grid

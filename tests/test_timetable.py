from datetime import time
from types import SimpleNamespace

import pytest
from django.core.exceptions import ValidationError

from administration.models import TimetableSlot
from administration.timetable import (
    DAYS, find_conflicts, format_minutes, generate_time_slots, generate_week_slots, overlaps,
    slots_between, to_minutes, weekly_grid,
)


def slot(day, start, end, teacher=1, school_class=1, pk=None):
    return SimpleNamespace(pk=pk, day=day, start_time=start, end_time=end,
                           teacher_id=teacher, school_class_id=school_class)


def hours(opening, closing, morning_break_start=None, afternoon_break_end=None):
    return SimpleNamespace(opening=opening, closing=closing, morning_break_start=morning_break_start,
                           afternoon_break_end=afternoon_break_end)


def test_minutes_conversions():
    assert to_minutes(time(8, 30)) == 510
    assert to_minutes('08:30') == 510
    assert to_minutes('08:30:00') == 510
    assert format_minutes(510) == '08:30'


def test_slots_between_excludes_end():
    assert slots_between(time(8, 0), time(9, 30)) == ['08:00', '08:30', '09:00']


def test_default_day_covers_opening_hours():
    slots = generate_time_slots()
    assert slots[0] == '07:00'
    assert slots[-1] == '17:30'
    assert len(slots) == 22


def test_breaks_are_skipped():
    day = hours(time(7, 0), time(16, 0), morning_break_start=time(12, 0), afternoon_break_end=time(14, 0))
    slots = generate_time_slots(day, interval=60)
    assert slots == ['07:00', '08:00', '09:00', '10:00', '11:00', '14:00', '15:00']


def test_morning_only_day():
    assert generate_time_slots(hours(time(8, 0), time(10, 0)), interval=60) == ['08:00', '09:00']


def test_week_slots_fall_back_to_defaults():
    week = generate_week_slots({'saturday': hours(time(8, 0), time(9, 0))}, interval=30)
    assert list(week) == DAYS
    assert week['saturday'] == ['08:00', '08:30']
    assert week['monday'][0] == '07:00'


def test_overlaps():
    first = slot('monday', time(8, 0), time(10, 0))
    assert overlaps(first, slot('monday', time(9, 0), time(11, 0)))
    assert not overlaps(first, slot('monday', time(10, 0), time(11, 0)))
    assert not overlaps(first, slot('tuesday', time(8, 0), time(10, 0)))


def test_find_conflicts_by_teacher_or_class():
    new = slot('monday', time(8, 0), time(9, 0), teacher=1, school_class=1)
    others = [
        slot('monday', time(8, 30), time(9, 30), teacher=1, school_class=2, pk=1),
        slot('monday', time(8, 30), time(9, 30), teacher=2, school_class=1, pk=2),
        slot('monday', time(8, 30), time(9, 30), teacher=3, school_class=3, pk=3),
    ]
    assert [c.pk for c in find_conflicts(new, others)] == [1, 2]


def test_find_conflicts_ignores_itself():
    existing = slot('monday', time(8, 0), time(9, 0), pk=5)
    assert find_conflicts(existing, [existing]) == []


def test_weekly_grid_is_sorted():
    grid = weekly_grid([
        slot('monday', time(10, 0), time(11, 0)),
        slot('monday', time(8, 0), time(9, 0)),
        slot('friday', time(8, 0), time(9, 0)),
    ])
    assert [s.start_time for s in grid['monday']] == [time(8, 0), time(10, 0)]
    assert len(grid['friday']) == 1
    assert grid['tuesday'] == []


@pytest.mark.django_db
def test_slot_rejects_overlap(teacher, school_class):
    TimetableSlot.objects.create(teacher=teacher, school_class=school_class, day='monday',
                                 start_time=time(8, 0), end_time=time(10, 0))
    clash = TimetableSlot(teacher=teacher, school_class=school_class, day='monday',
                          start_time=time(9, 0), end_time=time(11, 0))
    with pytest.raises(ValidationError):
        clash.full_clean()


@pytest.mark.django_db
def test_slot_rejects_end_before_start(teacher, school_class):
    bad = TimetableSlot(teacher=teacher, school_class=school_class, day='monday',
                        start_time=time(10, 0), end_time=time(9, 0))
    with pytest.raises(ValidationError):
        bad.full_clean()


@pytest.mark.django_db
def test_adjacent_slots_are_allowed(teacher, school_class):
    TimetableSlot.objects.create(teacher=teacher, school_class=school_class, day='monday',
                                 start_time=time(8, 0), end_time=time(10, 0))
    follow = TimetableSlot(teacher=teacher, school_class=school_class, day='monday',
                           start_time=time(10, 0), end_time=time(11, 0))
    follow.full_clean()
    follow.save()
    assert follow.duration_hours == 1

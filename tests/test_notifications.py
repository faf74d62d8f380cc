import pytest

from administration import notifications
from administration.models import Notification, SchoolClass, Student
from administration.services import enroll_student

pytestmark = pytest.mark.django_db


@pytest.fixture
def other_student(school_settings):
    other_class = SchoolClass.objects.create(name='5B')
    return enroll_student(Student(first_name='Moussa', last_name='Keita', school_class=other_class))


def test_created_notifications_are_drafts(administrator):
    notification = notifications.create_notification('Holiday', 'No classes on Friday', 'all_students',
                                                     created_by=administrator)
    assert notification.status == 'draft'
    assert notification.sent_at is None


def test_drafts_are_not_delivered(student):
    notifications.create_notification('Draft', 'Not yet', 'all_students')
    assert notifications.inbox_for(student.user).count() == 0


def test_send_notification(administrator):
    notification = notifications.create_notification('Holiday', 'No classes on Friday', 'all_teachers')
    notifications.send_notification(notification)
    notification.refresh_from_db()
    assert notification.status == 'sent'
    assert notification.sent_at is not None


def test_student_inbox(student, other_student, school_class):
    personal = notifications.send_to_student(student, 'Fees', 'Please pay October', priority='important')
    everyone = notifications.send_to_all_students('Holiday', 'No classes on Friday')
    for_class = notifications.send_to_class(school_class, 'Trip', '6A goes to the museum')

    assert set(notifications.inbox_for(student.user)) == {personal, everyone, for_class}
    assert set(notifications.inbox_for(other_student.user)) == {everyone}


def test_teacher_inbox(teacher, permanent_teacher, student):
    personal = notifications.send_to_teacher(teacher, 'Timetable', 'New slot on Monday')
    group = notifications.send_to_teachers([teacher, permanent_teacher], 'Meeting', 'Friday 16:00')
    everyone = notifications.send_to_all_teachers('Holiday', 'No classes on Friday')
    notifications.send_to_all_students('Students only', 'Not for teachers')

    assert set(notifications.inbox_for(teacher.user)) == {personal, group, everyone}
    assert set(notifications.inbox_for(permanent_teacher.user)) == {group, everyone}


def test_administrator_inbox_is_empty(administrator):
    notifications.send_to_all_students('Holiday', 'No classes on Friday')
    assert notifications.inbox_for(administrator).count() == 0


def test_mark_as_read_is_idempotent(student):
    notification = notifications.send_to_student(student, 'Fees', 'Please pay October')
    first = notifications.mark_as_read(notification, student.user)
    second = notifications.mark_as_read(notification, student.user)
    assert first.pk == second.pk
    assert notification.is_read_by(student.user)


def test_statistics_and_filter(student, teacher):
    notifications.send_to_student(student, 'Fees', 'Please pay October')
    notifications.send_to_teacher(teacher, 'Timetable', 'New slot')
    notifications.create_notification('Draft', 'Later', 'all_teachers')

    stats = notifications.notification_statistics()
    assert stats == {'total': 3, 'sent': 2, 'drafts': 1, 'send_rate': 67}
    assert notifications.notifications_by_recipient_type('teacher').count() == 1
    assert Notification.objects.filter(recipient_type='all_teachers', status='draft').exists()


def test_statistics_without_notifications():
    assert notifications.notification_statistics()['send_rate'] == 0

from decimal import Decimal

import pytest
from django.contrib.auth.models import Group, User

from administration.decorators import ADMINISTRATOR
from administration.models import SchoolClass, SchoolSettings, Student
from administration.services import create_teacher, enroll_student


@pytest.fixture
def school_class(db):
    return SchoolClass.objects.create(
        name='6A', level='6', registration_fee=Decimal('20000'), annual_tuition=Decimal('150000'),
    )


@pytest.fixture
def school_settings(db):
    school = SchoolSettings.load()
    school.school_name = 'Lycee Test'
    school.uniform_price = Decimal('8000')
    school.insurance_price = Decimal('2500')
    school.save()
    return school


@pytest.fixture
def administrator(db):
    user = User.objects.create_user(username='director', password='secret-pass', email='director@example.com')
    group, _ = Group.objects.get_or_create(name=ADMINISTRATOR)
    user.groups.add(group)
    return user


@pytest.fixture
def administrator_client(client, administrator):
    client.force_login(administrator)
    return client


@pytest.fixture
def student(school_class, school_settings):
    return enroll_student(Student(first_name='Awa', last_name='Diallo', school_class=school_class, uniform=True))


@pytest.fixture
def teacher(db):
    teacher, _ = create_teacher('Jean', 'Kouassi', 'jean@example.com', 'vacataire', hourly_rate=Decimal('5000'))
    return teacher


@pytest.fixture
def permanent_teacher(db):
    teacher, _ = create_teacher('Marie', 'Bamba', 'marie@example.com', 'cdi', monthly_salary=Decimal('320000'))
    return teacher

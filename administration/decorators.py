from django.contrib.auth.decorators import user_passes_test

ADMINISTRATOR = 'Administrator'
TEACHER = 'Teacher'
STUDENT = 'Student'
ROLES = [ADMINISTRATOR, TEACHER, STUDENT]

ROLE_PERMISSIONS = {
    TEACHER: {'view_timetable', 'clock_in', 'view_profile'},
    STUDENT: {'view_profile', 'view_payments'},
}


def user_role(user):
    if not user.is_authenticated:
        return None
    if user.is_superuser:
        return ADMINISTRATOR
    groups = set(user.groups.values_list('name', flat=True))
    for role in ROLES:
        if role in groups:
            return role
    return None


def is_administrator(user):
    return user_role(user) == ADMINISTRATOR


def is_teacher(user):
    return user_role(user) == TEACHER


def is_student(user):
    return user_role(user) == STUDENT


def has_permission(user, permission):
    role = user_role(user)
    if role == ADMINISTRATOR:
        return True
    return permission in ROLE_PERMISSIONS.get(role, set())


def administrator_required(view_func):
    decorator = user_passes_test(is_administrator)
    return decorator(view_func)


def teacher_required(view_func):
    decorator = user_passes_test(is_teacher)
    return decorator(view_func)


def student_required(view_func):
    decorator = user_passes_test(is_student)
    return decorator(view_func)


def permission_required(permission):
    def wrapper(view_func):
        return user_passes_test(lambda u: has_permission(u, permission))(view_func)
    return wrapper

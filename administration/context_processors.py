from django.conf import settings
from django.urls import reverse

from .decorators import ADMINISTRATOR, TEACHER, STUDENT, user_role
from .models import SchoolSettings


def dashboard_info(request):
    dashboard_url = reverse('login')  # fallback
    role = None
    school_name = ''

    if request.user.is_authenticated:
        role = user_role(request.user)
        if role == ADMINISTRATOR:
            dashboard_url = reverse('admin_dashboard')
        elif role == TEACHER:
            dashboard_url = reverse('teacher_dashboard')
        elif role == STUDENT:
            dashboard_url = reverse('student_dashboard')
        school_name = SchoolSettings.load().school_name

    return {
        'dashboard_url': dashboard_url,
        'user_role': role,
        'school_name': school_name,
        'currency': settings.SCHOOL_CURRENCY,
    }

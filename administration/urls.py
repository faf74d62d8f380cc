from django.urls import path
from . import views

urlpatterns = [
    # Authentication
    path('', views.dashboard, name='dashboard'),
    path('login/', views.user_login, name='login'),
    path('logout/', views.user_logout, name='logout'),

    # Dashboards
    path('administration/', views.admin_dashboard, name='admin_dashboard'),
    path('teacher/', views.teacher_dashboard, name='teacher_dashboard'),
    path('student/', views.student_dashboard, name='student_dashboard'),

    # Settings
    path('settings/', views.school_settings, name='school_settings'),
    path('settings/reset/', views.reset_settings, name='reset_settings'),
    path('settings/options/add/', views.add_custom_option, name='add_custom_option'),
    path('settings/options/<int:option_id>/edit/', views.edit_custom_option, name='edit_custom_option'),
    path('settings/options/<int:option_id>/delete/', views.delete_custom_option, name='delete_custom_option'),
    path('settings/installments/add/', views.add_installment, name='add_installment'),
    path('settings/installments/<int:plan_id>/delete/', views.delete_installment, name='delete_installment'),
    path('settings/hours/<int:hours_id>/', views.edit_school_hours, name='edit_school_hours'),

    # Classes and subjects
    path('classes/', views.class_list, name='class_list'),
    path('classes/<int:class_id>/', views.class_detail, name='class_detail'),
    path('classes/<int:class_id>/edit/', views.class_edit, name='class_edit'),
    path('classes/<int:class_id>/delete/', views.class_delete, name='class_delete'),
    path('subjects/', views.subject_list, name='subject_list'),
    path('subjects/<int:subject_id>/edit/', views.subject_edit, name='subject_edit'),
    path('subjects/<int:subject_id>/delete/', views.subject_delete, name='subject_delete'),

    # Students
    path('students/', views.student_list, name='student_list'),
    path('students/new/', views.student_create, name='student_create'),
    path('students/export/', views.export_students, name='export_students'),
    path('students/credentials/', views.export_credentials, name='export_credentials'),
    path('students/import/', views.import_students_view, name='import_students'),
    path('students/<int:student_id>/', views.student_detail, name='student_detail'),
    path('students/<int:student_id>/edit/', views.student_edit, name='student_edit'),
    path('students/<int:student_id>/archive/', views.student_archive, name='student_archive'),
    path('students/<int:student_id>/status/', views.student_change_status, name='student_change_status'),
    path('students/<int:student_id>/delete/', views.student_delete, name='student_delete'),
    path('students/<int:student_id>/registration-receipt/', views.registration_receipt, name='registration_receipt'),
    path('students/<int:student_id>/certificate/', views.student_certificate, name='student_certificate'),

    # Payments
    path('payments/', views.payment_list, name='payment_list'),
    path('payments/new/', views.payment_create, name='payment_create'),
    path('payments/student/<int:student_id>/', views.payment_items, name='payment_items'),
    path('payments/<int:payment_id>/receipt/', views.payment_receipt, name='payment_receipt'),
    path('payments/unpaid/', views.unpaid_list, name='unpaid_list'),
    path('payments/monthly/', views.monthly_revenue, name='monthly_revenue'),
    path('payments/reports/<int:report_id>/download/', views.download_revenue_report, name='download_revenue_report'),

    # Teachers
    path('teachers/', views.teacher_list, name='teacher_list'),
    path('teachers/new/', views.teacher_create, name='teacher_create'),
    path('teachers/payroll/', views.payroll_report, name='payroll_report'),
    path('teachers/<int:teacher_id>/', views.teacher_detail, name='teacher_detail'),
    path('teachers/<int:teacher_id>/edit/', views.teacher_edit, name='teacher_edit'),
    path('teachers/<int:teacher_id>/toggle/', views.teacher_toggle_status, name='teacher_toggle_status'),
    path('teachers/<int:teacher_id>/delete/', views.teacher_delete, name='teacher_delete'),
    path('teachers/<int:teacher_id>/salary/', views.teacher_salary, name='teacher_salary'),
    path('teachers/<int:teacher_id>/classes/', views.teacher_assign_classes, name='teacher_assign_classes'),
    path('teachers/<int:teacher_id>/subjects/', views.teacher_assign_subjects, name='teacher_assign_subjects'),
    path('teachers/<int:teacher_id>/history/', views.teacher_history, name='teacher_history'),
    path('teachers/<int:teacher_id>/contact/', views.teacher_contact, name='teacher_contact'),
    path('teachers/<int:teacher_id>/documents/', views.teacher_documents, name='teacher_documents'),
    path('teachers/<int:teacher_id>/attendance/', views.teacher_attendance, name='teacher_attendance'),
    path('documents/<int:document_id>/sent/', views.document_mark_sent, name='document_mark_sent'),
    path('documents/<int:document_id>/archive/', views.document_archive, name='document_archive'),
    path('clock-in/', views.clock_in, name='clock_in'),

    # Administrative staff
    path('staff/', views.staff_list, name='staff_list'),
    path('staff/new/', views.staff_create, name='staff_create'),
    path('staff/<int:staff_id>/edit/', views.staff_edit, name='staff_edit'),
    path('staff/<int:staff_id>/delete/', views.staff_delete, name='staff_delete'),

    # Timetable
    path('timetable/', views.timetable, name='timetable'),
    path('timetable/<int:slot_id>/delete/', views.timetable_slot_delete, name='timetable_slot_delete'),

    # Absences
    path('absences/', views.absence_list, name='absence_list'),
    path('absences/<int:absence_id>/edit/', views.absence_edit, name='absence_edit'),
    path('absences/<int:absence_id>/justify/', views.absence_justify, name='absence_justify'),
    path('absences/<int:absence_id>/delete/', views.absence_delete, name='absence_delete'),

    # Notifications
    path('notifications/', views.notification_list, name='notification_list'),
    path('notifications/<int:notification_id>/send/', views.notification_send, name='notification_send'),
    path('notifications/<int:notification_id>/delete/', views.notification_delete, name='notification_delete'),
    path('inbox/', views.my_notifications, name='my_notifications'),
    path('inbox/<int:notification_id>/read/', views.notification_read, name='notification_read'),

    # Audit and reports
    path('audit/', views.audit_log, name='audit_log'),
    path('reports/', views.reports, name='reports'),
]

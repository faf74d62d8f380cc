from django.contrib import admin
from .models import (
    SchoolSettings, SchoolClass, Subject, CustomOption, InstallmentPlan, SchoolHours, TeacherProfile,
    Student, Payment, RevenueReport, Absence, TimetableSlot, TeacherAttendance, AssignmentHistory,
    AdministrativeDocument, TeacherContact, StaffMember, Notification, NotificationReceipt, AuditLog,
)

admin.site.register(SchoolSettings)
admin.site.register(SchoolClass)
admin.site.register(Subject)
admin.site.register(CustomOption)
admin.site.register(InstallmentPlan)
admin.site.register(SchoolHours)
admin.site.register(TeacherProfile)
admin.site.register(Student)
admin.site.register(Payment)
admin.site.register(RevenueReport)
admin.site.register(Absence)
admin.site.register(TimetableSlot)
admin.site.register(TeacherAttendance)
admin.site.register(AssignmentHistory)
admin.site.register(AdministrativeDocument)
admin.site.register(TeacherContact)
admin.site.register(StaffMember)
admin.site.register(Notification)
admin.site.register(NotificationReceipt)
admin.site.register(AuditLog)

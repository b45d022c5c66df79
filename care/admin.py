"""Django admin registrations for the clinic models."""

from django.contrib import admin

from .models import (
    AccountsStaff,
    Appointment,
    AuditEvent,
    Doctor,
    LabTest,
    LabTestCategory,
    Nurse,
    NursingNote,
    Patient,
    PatientVital,
    Procedure,
    ReceptionStaff,
    Transaction,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'is_active', 'is_superuser')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'email', 'first_name', 'last_name')


class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ('id', 'first_name', 'last_name', 'email', 'department', 'user', 'is_active')
    list_filter = ('is_active', 'department')
    search_fields = ('first_name', 'last_name', 'email')
    raw_id_fields = ('user',)


admin.site.register(Doctor, StaffProfileAdmin)
admin.site.register(Nurse, StaffProfileAdmin)
admin.site.register(ReceptionStaff, StaffProfileAdmin)
admin.site.register(AccountsStaff, StaffProfileAdmin)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('mr_number', 'first_name', 'last_name', 'contact_number', 'created_at')
    search_fields = ('mr_number', 'first_name', 'last_name', 'contact_number')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'nurse', 'appointment_date', 'status')
    list_filter = ('status',)


@admin.register(Procedure)
class ProcedureAdmin(admin.ModelAdmin):
    list_display = ('id', 'procedure_name', 'patient', 'doctor', 'nurse', 'procedure_date', 'status')
    list_filter = ('status',)


@admin.register(NursingNote)
class NursingNoteAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'nurse', 'note_date')


@admin.register(PatientVital)
class PatientVitalAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'nurse', 'recorded_date')


@admin.register(LabTestCategory)
class LabTestCategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'is_active')


@admin.register(LabTest)
class LabTestAdmin(admin.ModelAdmin):
    list_display = ('id', 'test_name', 'patient', 'category', 'status', 'assigned_to')
    list_filter = ('status', 'category')


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'transaction_type', 'amount', 'status', 'transaction_date')
    list_filter = ('status', 'transaction_type', 'payment_mode')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'action', 'object_type', 'object_id')
    list_filter = ('action',)
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')

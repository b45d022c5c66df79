"""
URL mappings for the clinic API.

Trailing slashes are deliberately omitted; ``APPEND_SLASH`` is off.
"""
from django.urls import include, path

from .auth_views import home_view, jwt_logout_view, jwt_refresh_view, login_view, me_view
from .views import appointments, doctor, doctors, health, lab, nursing, patients, transactions, users

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),
    path('api/auth/me', me_view, name='me'),
    path('api/home', home_view, name='home'),

    path('api/users', users.users_list, name='users_list'),
    path('api/users/<int:pk>', users.user_detail, name='user_detail'),
    path('api/users/<int:pk>/repair-profile', users.user_repair_profile, name='user_repair_profile'),

    path('api/patients', patients.patients_list, name='patients_list'),
    path('api/patients/<int:pk>', patients.patient_detail, name='patient_detail'),

    path('api/appointments', appointments.appointments_list, name='appointments_list'),
    path('api/appointments/today', appointments.appointments_today, name='appointments_today'),
    path('api/appointments/<int:pk>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/<int:pk>/notify', appointments.appointment_notify, name='appointment_notify'),
    path('api/procedures', appointments.procedures_list, name='procedures_list'),
    path('api/procedures/<int:pk>', appointments.procedure_detail, name='procedure_detail'),

    path('api/nursing/dashboard', nursing.nursing_dashboard, name='nursing_dashboard'),
    path('api/nursing/notes', nursing.nursing_notes, name='nursing_notes'),
    path('api/nursing/notes/<int:pk>', nursing.nursing_note_detail, name='nursing_note_detail'),
    path('api/nursing/form-options', nursing.nursing_form_options, name='nursing_form_options'),
    path('api/nursing/vitals', nursing.nursing_vitals, name='nursing_vitals'),
    path('api/nursing/progress', nursing.nursing_progress, name='nursing_progress'),

    path('api/doctors', doctors.doctors_list, name='doctors_list'),
    path('api/doctors/<int:pk>', doctors.doctors_detail, name='doctors_detail'),

    path('api/doctor/dashboard', doctor.doctor_dashboard, name='doctor_dashboard'),
    path('api/doctor/profile', doctor.doctor_profile, name='doctor_profile'),
    path('api/doctor/appointments', doctor.doctor_appointments, name='doctor_appointments'),
    path('api/doctor/procedures', doctor.doctor_procedures, name='doctor_procedures'),
    path('api/doctor/patients', doctor.doctor_patients, name='doctor_patients'),
    path('api/doctor/patients/<int:pk>', doctor.doctor_patient_history, name='doctor_patient_history'),

    path('api/lab/categories', lab.lab_categories, name='lab_categories'),
    path('api/lab/categories/<int:pk>', lab.lab_category_detail, name='lab_category_detail'),
    path('api/lab/tests', lab.lab_tests, name='lab_tests'),
    path('api/lab/tests/<int:pk>', lab.lab_test_detail, name='lab_test_detail'),
    path('api/lab/tests/<int:pk>/report', lab.lab_test_report, name='lab_test_report'),

    path('api/transactions', transactions.transactions_list, name='transactions_list'),
    path('api/transactions/<int:pk>', transactions.transaction_detail, name='transaction_detail'),
    path('api/transactions/<int:pk>/invoice', transactions.transaction_invoice, name='transaction_invoice'),
]

from django.urls import path
from django.contrib.auth import views as auth_views
from . import views
from .views import ClinicLoginView

app_name = 'dashboard'

urlpatterns = [
    path('', views.index, name='home'),
    path('patients/new/', views.patient_create, name='patient_create'),
    path('patients/<int:pk>/', views.patient_detail, name='patient_detail'),
    path('patients/<int:pk>/edit/', views.patient_edit, name='patient_edit'),
    path('patients/<int:pk>/delete/', views.patient_delete, name='patient_delete'),
    path('appointments/', views.appointments, name='appointments'),
    path('appointments/new/', views.appointment_form, name='appointment_form'),
    path('appointments/<int:pk>/', views.appointment_detail, name='appointment_detail'),
    path('appointments/<int:pk>/edit/', views.appointment_edit, name='appointment_edit'),
    path('appointments/<int:pk>/delete/', views.appointment_delete, name='appointment_delete'),
    path('activity/', views.activity_log, name='activity_log'),
    path('analytics/', views.analytics, name='analytics'),
    path('analytics/data/', views.analytics_data, name='analytics_data'),
    path('login/',  ClinicLoginView.as_view(), name='login'),
    path('logout/', auth_views.LogoutView.as_view(), name='logout'),
]

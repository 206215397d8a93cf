from django.urls import path
from . import views

urlpatterns = [
    path('registration/', views.SchoolRegistrationView.as_view(), name='school-registration'),
    path('subdomain-availability/', views.SubdomainAvailabilityView.as_view(), name='subdomain-availability'),
    path('subdomain-health/', views.SubdomainHealthListView.as_view(), name='subdomain-health-all'),
    path('<int:pk>/subdomain/', views.SchoolSubdomainView.as_view(), name='school-subdomain'),
    path('<int:pk>/subdomain-health/', views.SchoolSubdomainHealthView.as_view(), name='school-subdomain-health'),
]

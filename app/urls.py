"""
URL configuration for the ShikiPilot store console backend.
"""
from django.contrib import admin
from django.urls import path, include
from .views import health_check

urlpatterns = [
    path('health/', health_check, name='health'),
    path('admin/', admin.site.urls),
    path('ai/', include('ai_features.urls')),
]

"""URL configuration for the booking engine.

The `urlpatterns` list routes URLs to views. It includes the Django admin,
the application‑level routers of each domain app and the OpenAPI schema.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    # Application URLs
    path('api/v1/properties/', include('apps.properties.urls')),
    path('api/v1/search/', include('apps.search.urls')),
    path('api/v1/pms/', include('apps.pms.urls')),
    path('api/v1/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/v1/', include('apps.bookings.urls')),
]

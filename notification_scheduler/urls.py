"""Root URL configuration for the notification scheduler project."""

from django.urls import include, path

urlpatterns = [
    path("api/v1/scheduler/", include("scheduling.urls")),
]

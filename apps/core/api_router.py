from django.urls import include, path

urlpatterns = [
    path("", include("apps.matching.urls")),
]

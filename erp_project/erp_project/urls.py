from django.urls import include, path

urlpatterns = [
    path("api/", include("erp_core.urls")),
]

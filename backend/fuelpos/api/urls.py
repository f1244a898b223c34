# fuelpos/api/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

from .views import (
    FuelTypeViewSet,
    PumpViewSet,
    ReportViewSet,
    SaleViewSet,
    ShiftViewSet,
    TankViewSet,
    me,
)

# --------------------------------------------------
# API ROUTER: register viewsets here
# --------------------------------------------------
router = DefaultRouter()
router.register(r"shifts", ShiftViewSet, basename="shift")
router.register(r"sales", SaleViewSet, basename="sale")
router.register(r"fuel-types", FuelTypeViewSet, basename="fuel-type")
router.register(r"pumps", PumpViewSet, basename="pump")
router.register(r"tanks", TankViewSet, basename="tank")
router.register(r"reports", ReportViewSet, basename="report")


# --------------------------------------------------
# URL PATTERNS
# --------------------------------------------------
urlpatterns = [
    path("", include(router.urls)),

    # JWT auth
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),

    path("me/", me, name="me"),
]

# fuelpos/ws/routing.py
from django.urls import re_path

from .consumers import StationConsumer

websocket_urlpatterns = [
    re_path(r"^ws/station/?$", StationConsumer.as_asgi()),
]

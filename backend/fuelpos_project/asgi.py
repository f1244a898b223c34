# fuelpos_project/asgi.py
import os
from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fuelpos_project.settings")
django_asgi_app = get_asgi_application()

# import here after settings are configured
from fuelpos.ws.middleware import TokenAuthMiddlewareStack
import fuelpos.ws.routing as ws_routing

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": TokenAuthMiddlewareStack(
        URLRouter(ws_routing.websocket_urlpatterns)
    ),
})

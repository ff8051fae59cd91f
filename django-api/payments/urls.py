from django.urls import path

from payments.views import AuthorizeView, CallbackView, DisconnectView, StatusView


def get_urlpatterns(container) -> list:
    service = container.connections
    return [
        path("auth/mercadopago/authorize", AuthorizeView.as_view(service=service), name="mp-authorize"),
        path("auth/mercadopago/callback", CallbackView.as_view(service=service), name="mp-callback"),
        path("auth/mercadopago/status", StatusView.as_view(service=service), name="mp-status"),
        path("auth/mercadopago/disconnect", DisconnectView.as_view(service=service), name="mp-disconnect"),
    ]

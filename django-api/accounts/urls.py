from django.urls import path

from accounts.handlers.views import (
    MeView,
    OrganizerLoginView,
    OrganizerRegisterView,
    ParticipantLoginView,
    ParticipantRegisterView,
    RefreshView,
)


def get_urlpatterns(container) -> list:
    service = container.accounts
    return [
        path("auth/register", OrganizerRegisterView.as_view(service=service), name="auth-register"),
        path("auth/login", OrganizerLoginView.as_view(service=service), name="auth-login"),
        path("auth/refresh", RefreshView.as_view(service=service), name="auth-refresh"),
        path("auth/me", MeView.as_view(service=service), name="auth-me"),
        path(
            "auth/participant/register",
            ParticipantRegisterView.as_view(service=service),
            name="participant-register",
        ),
        path(
            "auth/participant/login",
            ParticipantLoginView.as_view(service=service),
            name="participant-login",
        ),
    ]

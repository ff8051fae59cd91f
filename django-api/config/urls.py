from django.contrib import admin
from django.urls import include, path

from accounts.urls import get_urlpatterns as account_urls
from config.container import Container
from events.urls import get_urlpatterns as event_urls
from payments.urls import get_urlpatterns as payment_urls
from registrations.urls import get_urlpatterns as registration_urls

container = Container.from_settings()

api_urlpatterns = [
    *account_urls(container),
    *payment_urls(container),
    *registration_urls(container),
    *event_urls(container),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include(api_urlpatterns)),
]

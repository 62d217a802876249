"""Account URL configuration."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.accounts.views import AccountViewSet, AuthViewSet

router = SimpleRouter(trailing_slash=True)
router.register("auth", AuthViewSet, basename="auth")
router.register("auth", AccountViewSet, basename="account")

urlpatterns = router.urls

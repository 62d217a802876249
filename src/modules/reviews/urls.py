"""Review URL configuration."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.reviews.views import ReviewViewSet

router = SimpleRouter(trailing_slash=True)
router.register("reviews", ReviewViewSet, basename="review")

urlpatterns = router.urls

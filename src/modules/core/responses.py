"""Success envelope helper: ``{"success": true, ...payload}``."""

from __future__ import annotations

from typing import Any

from rest_framework import status as http_status
from rest_framework.response import Response


def success(status: int = http_status.HTTP_200_OK, headers=None, **payload: Any) -> Response:
    return Response({"success": True, **payload}, status=status, headers=headers)

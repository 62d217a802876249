"""Page-number pagination rendered inside the success envelope."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    """``?page=N&limit=M``; results are returned under a caller chosen key.

    The pagination block mirrors the storefront client contract:
    ``currentPage``, ``itemsPerPage``, ``totalPages``, ``totalItems``,
    ``hasMore`` and ``hasPrevious``.
    """

    page_size_query_param = "limit"
    max_page_size = 100

    def get_pagination_data(self) -> Dict[str, Any]:
        total = self.page.paginator.count
        per_page = self.page.paginator.per_page
        current = self.page.number
        total_pages = math.ceil(total / per_page) if per_page else 0
        return {
            "currentPage": current,
            "itemsPerPage": per_page,
            "totalPages": total_pages,
            "totalItems": total,
            "hasMore": current < total_pages,
            "hasPrevious": current > 1,
        }

    def get_paginated_response(
        self, data: List[Any], results_key: str = "results", extra: Optional[Dict[str, Any]] = None
    ) -> Response:
        body: Dict[str, Any] = {"success": True, results_key: data}
        if extra:
            body.update(extra)
        body["pagination"] = self.get_pagination_data()
        return Response(body)

    def get_paginated_response_schema(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "results": schema,
                "pagination": {
                    "type": "object",
                    "properties": {
                        "currentPage": {"type": "integer"},
                        "itemsPerPage": {"type": "integer"},
                        "totalPages": {"type": "integer"},
                        "totalItems": {"type": "integer"},
                        "hasMore": {"type": "boolean"},
                        "hasPrevious": {"type": "boolean"},
                    },
                },
            },
        }

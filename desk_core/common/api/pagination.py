from __future__ import annotations

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 200


def paginate(request, queryset, serializer_class, *, paginator: PageNumberPagination | None = None) -> Response:
    """
    Stable list contract: { count, next, previous, results }
    """
    p = paginator or DefaultPagination()
    page = p.paginate_queryset(queryset, request)
    if page is not None:
        return p.get_paginated_response(serializer_class(page, many=True).data)

    return Response(serializer_class(queryset, many=True).data)

"""Pagination classes for API endpoints."""

from rest_framework.pagination import PageNumberPagination


class JobHistoryPagination(PageNumberPagination):
    """Page-number pagination for a recipient's job history."""

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100

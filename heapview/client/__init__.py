"""HTTP client utilities for talking to a running heapview diagram service."""

from .http import HeapviewHttpClient, HttpResponse  # noqa: F401

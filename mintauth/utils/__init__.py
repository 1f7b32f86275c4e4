from .urls import normalize_endpoint_url

__all__ = ["normalize_endpoint_url"]

from .client import HttpClient, HttpClientConfig, api_url

__all__ = ["HttpClient", "HttpClientConfig", "api_url"]

from .handler import ObjectRequestHandler

__all__ = ["ObjectRequestHandler"]

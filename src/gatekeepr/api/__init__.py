from .app import Runtime, build_runtime, create_app, main

__all__ = ["Runtime", "build_runtime", "create_app", "main"]

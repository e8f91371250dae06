from rota.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]

import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from eventflow.core.ctx import REQUEST_ID_CTX, ROUTE_CTX, CLIENT_IP_CTX, REDIS_CTX


def _client_ip(request: Request) -> str | None:
    xff = request.headers.get("x-forwarded-for")
    return xff.split(",")[0].strip() if xff else (request.client.host if request.client else None)


def _http_route(request: Request) -> str:
    return f"{request.method} {request.url.path}"


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid.uuid4())
        tokens: list[tuple] = [
            (REQUEST_ID_CTX, REQUEST_ID_CTX.set(rid)),
            (ROUTE_CTX, ROUTE_CTX.set(_http_route(request))),
            (CLIENT_IP_CTX, CLIENT_IP_CTX.set(_client_ip(request))),
        ]
        redis_client = getattr(request.app.state, "redis", None)
        if redis_client:
            tokens.append((REDIS_CTX, REDIS_CTX.set(redis_client)))
        try:
            response = await call_next(request)
            response.headers.setdefault(self.header_name, rid)
            return response
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

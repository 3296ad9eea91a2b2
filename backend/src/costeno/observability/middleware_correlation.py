# backend/src/costeno/observability/middleware_correlation.py
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from starlette.requests import Request
from starlette.responses import Response
from .logging_context import correlation_id_var, session_id_var

HEADER = "X-Correlation-Id"
SESSION_HEADER = "X-Session-Id"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    - Lee o genera un X-Correlation-Id por request
    - Lee o genera un X-Session-Id (una sesión por pestaña del navegador)
    - Los expone en request.state.correlation_id / request.state.session_id
    - Los devuelve en la respuesta para que el cliente reutilice la sesión
    - Los guarda en ContextVar para que el logger los incluya automáticamente
    """
    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        cid = request.headers.get(HEADER) or str(uuid.uuid4())
        sid = (request.headers.get(SESSION_HEADER) or "").strip() or uuid.uuid4().hex
        request.state.correlation_id = cid
        request.state.session_id = sid

        # ContextVar: set -> call_next -> reset
        cid_token = correlation_id_var.set(cid)
        sid_token = session_id_var.set(sid)
        try:
            response: Response = await call_next(request)
        finally:
            session_id_var.reset(sid_token)
            correlation_id_var.reset(cid_token)

        response.headers[HEADER] = cid
        response.headers[SESSION_HEADER] = sid
        return response

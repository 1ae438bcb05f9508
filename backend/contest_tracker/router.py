"""Route table and FastAPI application assembly.

Every route declares the minimum role it requires. The router wraps each
handler with a dependency that runs the role gate before the handler is
invoked, installs CORS and request logging, and maps domain errors to
HTTP responses: ignorable errors become their 4xx status, everything else
is reported and answered with a bare 500.
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials
from starlette.concurrency import run_in_threadpool

from . import errors, models
from .auth import authorize, bearer_scheme

logger = logging.getLogger("contest_tracker.api")


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    handler: Callable
    min_role: Optional[models.Role] = None
    status_code: Optional[int] = None


class Router:
    """Builds the FastAPI application serving `routes`."""
    def __init__(self, jwt_generator, error_reporter, cors_allowed_origins: List[str], routes: List[Route], title: str = "Contest Tracker API"):
        self.jwt_generator = jwt_generator
        self.error_reporter = error_reporter
        self.cors_allowed_origins = list(cors_allowed_origins)
        self.routes = list(routes)
        self.title = title

    def _gate(self, min_role: Optional[models.Role]):
        jwt_generator = self.jwt_generator

        def role_gate(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)):
            token = credentials.credentials if credentials else None
            request.state.claims = authorize(min_role, token, jwt_generator)

        return role_gate

    def build(self) -> FastAPI:
        app = FastAPI(title=self.title)
        self._install_request_logging(app)
        self._install_error_handlers(app)
        if self.cors_allowed_origins:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=self.cors_allowed_origins,
                allow_credentials="*" not in self.cors_allowed_origins,
                allow_methods=["*"],
                allow_headers=["*"],
            )
        for route in self.routes:
            kwargs = {}
            if route.status_code is not None:
                kwargs["status_code"] = route.status_code
            app.add_api_route(
                route.path,
                route.handler,
                methods=[route.method],
                dependencies=[Depends(self._gate(route.min_role))],
                **kwargs,
            )
        return app

    def _install_request_logging(self, app: FastAPI):
        reporter = self.error_reporter

        @app.middleware("http")
        async def request_context_middleware(request: Request, call_next):
            req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
            request.state.request_id = req_id
            started = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as exc:
                elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
                logger.error(
                    "request_failed %s",
                    json.dumps(
                        {
                            "request_id": req_id,
                            "path": request.url.path,
                            "method": request.method,
                            "duration_ms": elapsed_ms,
                        },
                        ensure_ascii=True,
                    ),
                )
                await run_in_threadpool(reporter.capture, exc, request_id=req_id, path=request.url.path, method=request.method)
                response = JSONResponse(status_code=500, content={"detail": "internal server error"})
            response.headers["X-Request-ID"] = req_id
            elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
            logger.info(
                "request_done %s",
                json.dumps(
                    {
                        "request_id": req_id,
                        "path": request.url.path,
                        "method": request.method,
                        "status_code": response.status_code,
                        "duration_ms": elapsed_ms,
                        "client": request.client.host if request.client else "unknown",
                    },
                    ensure_ascii=True,
                ),
            )
            return response

    def _install_error_handlers(self, app: FastAPI):
        reporter = self.error_reporter

        @app.exception_handler(errors.DomainError)
        async def domain_error_handler(request: Request, exc: errors.DomainError) -> Response:
            if exc.ignorable:
                logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
                return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
            await run_in_threadpool(
                reporter.capture,
                exc,
                request_id=getattr(request.state, "request_id", ""),
                path=request.url.path,
                method=request.method,
            )
            return JSONResponse(status_code=500, content={"detail": "internal server error"})

"""FastAPI app factory.

Endpoints are thin wrappers over :class:`ClaApi` / :class:`RepoApi`. Every operation is a
``POST`` with the operation arguments as JSON body (``/api/cla/<operation>``), the
RPC style the web client speaks.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cla_assistant import __version__
from cla_assistant.api.auth import resolve_user
from cla_assistant.api.cla import ClaApi
from cla_assistant.api.factory import Components, build_components
from cla_assistant.api.repo import RepoApi
from cla_assistant.config import ClaSettings
from cla_assistant.errors import (
    CheckError,
    ClaError,
    Forbidden,
    ForgeError,
    NotAuthenticated,
    NotFound,
    RenderError,
    SignError,
)
from cla_assistant.models import (
    AuthenticatedUser,
    CheckResult,
    ClaArgs,
    GistRef,
    RenderedCla,
    RequestContext,
    SignatureRecord,
)

logger = logging.getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[ClaError], int], ...] = (
    (NotFound, 404),
    (NotAuthenticated, 401),
    (Forbidden, 403),
    (RenderError, 502),
    (SignError, 500),
    (CheckError, 500),
)


class ApiRepo(BaseModel):
    """Linked repository as exposed over HTTP (the stored token never leaves the server)."""

    owner: str
    repo: str
    gist: GistRef | None = None


def _components(request: Request) -> Components:
    components = getattr(request.app.state, "components", None)
    if not isinstance(components, Components):
        raise HTTPException(status_code=500, detail="CLA services not configured")
    return components


def _cla(request: Request) -> ClaApi:
    return _components(request).cla


def _repos(request: Request) -> RepoApi:
    return _components(request).repos


def current_user(request: Request) -> AuthenticatedUser | None:
    """Resolve the GitHub user behind an ``Authorization: token|Bearer <t>`` header.

    Requests without the header are anonymous; a token GitHub rejects is a 401.
    """

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    token = token.strip()
    if scheme.lower() not in {"token", "bearer"} or not token:
        return None
    return resolve_user(_components(request).github, token)


def _ctx(args: ClaArgs, user: AuthenticatedUser | None) -> RequestContext:
    return RequestContext(user=user, args=args)


router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": __version__}


@router.post("/cla/get", response_model=RenderedCla)
def cla_get(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> RenderedCla:
    return _cla(request).get(_ctx(args, user))


@router.post("/cla/getGist")
def cla_get_gist(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> dict[str, Any]:
    return _cla(request).get_gist(_ctx(args, user))


@router.post("/cla/sign", response_model=SignatureRecord)
def cla_sign(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> SignatureRecord:
    return _cla(request).sign(_ctx(args, user))


@router.post("/cla/check", response_model=CheckResult)
def cla_check(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> CheckResult:
    return _cla(request).check(_ctx(args, user))


@router.post("/cla/getAll", response_model=list[SignatureRecord])
def cla_get_all(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> list[SignatureRecord]:
    return _cla(request).get_all(_ctx(args, user))


@router.post("/cla/countCLA")
def cla_count(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> int:
    return _cla(request).count_cla(_ctx(args, user))


@router.post("/cla/getLastSignature", response_model=SignatureRecord | None)
def cla_get_last_signature(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> SignatureRecord | None:
    return _cla(request).get_last_signature(_ctx(args, user))


@router.post("/cla/getSignedCLA", response_model=list[SignatureRecord])
def cla_get_signed(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> list[SignatureRecord]:
    return _cla(request).get_signed_cla(_ctx(args, user))


@router.post("/cla/upload", response_model=list[SignatureRecord] | None)
def cla_upload(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> list[SignatureRecord] | None:
    return _cla(request).upload(_ctx(args, user))


@router.post("/cla/validatePullRequests")
def cla_validate_pull_requests(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> dict[str, int]:
    return {"dispatched": _cla(request).validate_pull_requests(_ctx(args, user))}


@router.post("/repo/get", response_model=ApiRepo)
def repo_get(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> ApiRepo:
    return ApiRepo.model_validate(_repos(request).get(_ctx(args, user)).model_dump())


@router.post("/repo/link", response_model=ApiRepo)
def repo_link(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> ApiRepo:
    return ApiRepo.model_validate(_repos(request).link(_ctx(args, user)).model_dump())


@router.post("/repo/unlink")
def repo_unlink(
    args: ClaArgs, request: Request, user: AuthenticatedUser | None = Depends(current_user)
) -> dict[str, bool]:
    return {"removed": _repos(request).unlink(_ctx(args, user))}


def create_app(
    settings: ClaSettings | None = None, *, components: Components | None = None
) -> FastAPI:
    settings = settings or ClaSettings()
    executor: ThreadPoolExecutor | None = None
    if components is None:
        executor = ThreadPoolExecutor(
            max_workers=settings.fanout_workers, thread_name_prefix="cla-fanout"
        )
        components = build_components(settings, executor=executor)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        if executor is not None:
            # Let dispatched pull request updates finish before exiting.
            executor.shutdown(wait=True)
            components.github.close()

    app = FastAPI(
        title="CLA Assistant",
        version=__version__,
        description="Contributor License Agreement enforcement for GitHub pull requests.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ClaError)
    def _handle_cla_error(_request: Request, exc: ClaError) -> JSONResponse:
        status_code = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 400)
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    @app.exception_handler(ForgeError)
    def _handle_forge_error(_request: Request, exc: ForgeError) -> JSONResponse:
        logger.warning("GitHub call failed", extra={"error": str(exc)})
        return JSONResponse(status_code=502, content={"detail": exc.message})

    app.include_router(router, prefix="/api")
    return app

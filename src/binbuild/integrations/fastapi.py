"""FastAPI routes for build instantiation.

Usage::

    from binbuild.integrations.fastapi import create_build_router

    client = await BinaryBuildClient.connect()
    app = FastAPI()
    app.include_router(create_build_router(client, prefix="/apis/build.openshift.io/v1"))

Requires the ``fastapi`` extra::

    pip install binbuild[fastapi]
"""

from __future__ import annotations

try:
    from fastapi import APIRouter, Query, Request
    from fastapi.responses import JSONResponse
except ImportError as _err:  # pragma: no cover
    raise ImportError(
        "FastAPI is required for binbuild.integrations.fastapi. "
        "Install it with: pip install binbuild[fastapi]"
    ) from _err

import structlog

from binbuild.core.client import BinaryBuildClient
from binbuild.core.exceptions import BinaryBuildError
from binbuild.core.types import BinaryBuildRequestOptions, BuildRequest

logger = structlog.get_logger(__name__)


def _error_response(exc: BinaryBuildError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_status())


def create_build_router(client: BinaryBuildClient, prefix: str = "") -> APIRouter:
    """Return an :class:`APIRouter` with the build config instantiate endpoints.

    Endpoints:
        - ``POST {prefix}/namespaces/{namespace}/buildconfigs/{name}/instantiate``
          creates a build from a JSON build request
        - ``POST {prefix}/namespaces/{namespace}/buildconfigs/{name}/instantiatebinary``
          creates a build and streams the raw request body into it

    Both return ``201`` with the build on success and a ``Status`` object
    carrying the error's status code on failure.
    """
    router = APIRouter(prefix=prefix, tags=["builds"])

    @router.post("/namespaces/{namespace}/buildconfigs/{name}/instantiate", status_code=201)
    async def instantiate(namespace: str, name: str, body: BuildRequest) -> JSONResponse:
        request = body.model_copy(update={"name": name})
        try:
            build = await client.instantiate(namespace, request)
        except BinaryBuildError as exc:
            return _error_response(exc)
        return JSONResponse(status_code=201, content=build.to_versioned())

    @router.post(
        "/namespaces/{namespace}/buildconfigs/{name}/instantiatebinary", status_code=201
    )
    async def instantiate_binary(
        namespace: str,
        name: str,
        request: Request,
        as_file: str = Query("", alias="asFile"),
        commit: str = Query("", alias="revision.commit"),
        message: str = Query("", alias="revision.message"),
        author_name: str = Query("", alias="revision.authorName"),
        author_email: str = Query("", alias="revision.authorEmail"),
        committer_name: str = Query("", alias="revision.committerName"),
        committer_email: str = Query("", alias="revision.committerEmail"),
    ) -> JSONResponse:
        options = BinaryBuildRequestOptions(
            name=name,
            as_file=as_file,
            commit=commit,
            message=message,
            author_name=author_name,
            author_email=author_email,
            committer_name=committer_name,
            committer_email=committer_email,
        )
        try:
            build = await client.instantiate_binary(namespace, name, options, request.stream())
        except BinaryBuildError as exc:
            logger.info(
                "instantiate_binary_rejected",
                namespace=namespace,
                build_config=name,
                status_code=exc.status_code,
                error=exc.message,
            )
            return _error_response(exc)
        return JSONResponse(status_code=201, content=build.to_versioned())

    return router

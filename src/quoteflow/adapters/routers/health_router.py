# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Health endpoint (Adapters Layer).

Purpose:
    Liveness signal for container orchestrators and load balancers. The
    payload names the service and version taken from settings on
    ``app.state`` and never touches upstream providers.
"""

from __future__ import annotations

import typing as t

from fastapi import APIRouter, Request

from quoteflow.adapters.schemas.http.base import BaseHTTPSchema

router = APIRouter()


class LivenessResponse(BaseHTTPSchema):
    """Liveness response indicating the process is running."""

    status: t.Literal["ok"] = "ok"
    service: str | None = None
    version: str | None = None


@router.get(
    "/healthz",
    response_model=LivenessResponse,
    summary="Liveness check",
    tags=["Health"],
)
async def healthz(request: Request) -> LivenessResponse:
    settings = getattr(request.app.state, "settings", None)
    return LivenessResponse(
        service=getattr(settings, "service_name", None),
        version=getattr(settings, "service_version", None),
    )

# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Presenter utilities and canonical envelope helpers.

Purpose:
    Thin, framework-aware helpers used by routers to consistently shape HTTP
    responses and headers.

Responsibilities:
    * Build SuccessEnvelope instances.
    * Compute strong, quoted ETags from canonical JSON material.
    * Apply standard headers such as X-Request-ID and optional Cache-Control.

Layer:
    adapters/presenters
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from fastapi import Response

from quoteflow.adapters.schemas.http.base import BaseHTTPSchema
from quoteflow.adapters.schemas.http.envelopes import SuccessEnvelope


def decimal_str(value: Decimal | None) -> str | None:
    """Render ``value`` as a plain decimal string (no exponent), or ``None``."""
    if value is None:
        return None
    return format(value, "f")


def compute_quoted_etag(payload: Mapping[str, Any]) -> str:
    """Return a quoted strong ETag (SHA-256 of canonical JSON for ``payload``)."""
    material = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return f'"{hashlib.sha256(material).hexdigest()}"'


@dataclass(slots=True)
class PresentResult[T]:
    """Presentation result envelope.

    Attributes:
        body: A Pydantic envelope instance.
        headers: Extra HTTP headers to apply.
    """

    body: T
    headers: Mapping[str, str]


class BasePresenter:
    """Base presenter for HTTP response shaping in adapter layers."""

    def present_success(
        self,
        data: BaseHTTPSchema,
        *,
        trace_id: str | None = None,
        cache_ttl_s: int | None = None,
        with_etag: bool = False,
    ) -> PresentResult[SuccessEnvelope[Any]]:
        """Wrap ``data`` in a SuccessEnvelope and build its headers.

        Args:
            data: HTTP schema instance placed under ``data``.
            trace_id: Echoed as ``X-Request-ID`` when provided.
            cache_ttl_s: Advertised ``Cache-Control`` max-age, if any.
            with_etag: Compute an ``ETag`` over the serialized body.
        """
        body = SuccessEnvelope[Any](data=data)
        headers: dict[str, str] = {}
        if trace_id:
            headers["X-Request-ID"] = trace_id
        if with_etag:
            headers["ETag"] = compute_quoted_etag(body.model_dump_http())
        if cache_ttl_s is not None:
            headers["Cache-Control"] = f"public, max-age={int(cache_ttl_s)}"
        return PresentResult(body=body, headers=headers)

    @staticmethod
    def apply_headers(result: PresentResult[Any], response: Response) -> None:
        """Apply presenter headers to the outgoing response."""
        response.headers.update(dict(result.headers))

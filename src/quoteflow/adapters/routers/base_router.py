# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Base Router (Adapters Layer)

Purpose:
    Canonical APIRouter wrapper for quoteflow HTTP endpoints:
      - Versioned routing with stable prefixes (e.g., "/v1/quotes").
      - Standard error response mapping using ErrorEnvelope.

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

from fastapi import APIRouter

from quoteflow.adapters.schemas.http.envelopes import ErrorEnvelope
from quoteflow.infrastructure.logging.logger import get_json_logger

_LOGGER = get_json_logger(__name__)

TagType = str | Enum


class BaseRouter(APIRouter):
    """Versioned router with the canonical error responses.

    Args:
        version: API version segment (e.g., "v1").
        resource: Plural resource segment (e.g., "quotes").
        tags: Default tags applied to all routes mounted on this router.
        **kwargs: Additional APIRouter kwargs.
    """

    def __init__(
        self,
        *,
        version: str,
        resource: str,
        tags: Sequence[TagType] | None = None,
        **kwargs: Any,
    ) -> None:
        prefix = f"/{version}/{resource}"
        super().__init__(
            prefix=prefix,
            tags=list(tags) if tags is not None else None,
            **kwargs,
        )
        _LOGGER.debug(
            "router_initialized",
            extra={"extra": {"prefix": prefix, "tags": [str(t) for t in tags or []]}},
        )

    @staticmethod
    def std_error_responses() -> dict[int | str, dict[str, Any]]:
        """Return the canonical error response mapping for endpoints.

        Returns:
            Mapping from HTTP status code to an OpenAPI response object with
            ErrorEnvelope as the model.
        """
        return {
            400: {"model": ErrorEnvelope, "description": "Invalid symbol or parameter."},
            422: {"model": ErrorEnvelope, "description": "Unprocessable content."},
            500: {"model": ErrorEnvelope, "description": "Internal server error."},
        }

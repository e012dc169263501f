"""HTTP read endpoint for the Range Service."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response

from .core.config import CACHE_CONTROL, DEFAULT_KEY, DEFAULT_LENGTH, Settings
from .core.model import DigitStreamError, InvalidRangeError, ObjectNotFoundError, RangeNotSupportedError
from .service import RangeService
from .store import open_store

logger = logging.getLogger(__name__)


def parse_query(start: Optional[str], length: Optional[str], *, default_length: int, max_range: int) -> tuple[int, int]:
    """Turn raw query strings into a checked (start, length) pair."""
    try:
        start_val = int(start) if start not in (None, "") else 0
        length_val = int(length) if length not in (None, "") else default_length
    except ValueError:
        raise InvalidRangeError(f"non-numeric start/length: {start!r}, {length!r}") from None
    if start_val < 0 or length_val <= 0 or length_val > max_range:
        raise InvalidRangeError(f"start/length out of bounds: {start_val}, {length_val}")
    return start_val, length_val


def create_app(
    service: RangeService,
    key: str = DEFAULT_KEY,
    *,
    default_length: int = DEFAULT_LENGTH,
) -> FastAPI:
    """Build the FastAPI app serving `key` through `service`."""
    app = FastAPI(title="digitstream")
    app.state.service = service
    app.state.key = key

    # plain `def` so FastAPI runs the blocking store read in its threadpool
    def read_digits(start: Optional[str] = None, length: Optional[str] = None) -> Response:
        logger.debug("read request start=%r length=%r", start, length)
        try:
            offset, size = parse_query(start, length, default_length=default_length, max_range=service.max_range)
            result = service.read(key, offset, size)
        except InvalidRangeError as e:
            logger.info("rejected query: %s", e)
            return PlainTextResponse("Invalid query", status_code=400)
        except ObjectNotFoundError:
            logger.error("object %s not found in store", key)
            return PlainTextResponse("Object not found", status_code=404)
        except RangeNotSupportedError as e:
            logger.error("store cannot serve ranges: %s", e)
            return PlainTextResponse("Range not supported", status_code=502)
        except DigitStreamError as e:
            logger.warning("store read failed: %s", e)
            return PlainTextResponse("Store unavailable", status_code=503)

        return Response(
            content=result.data,
            status_code=200,
            media_type="text/plain",
            headers={"Cache-Control": CACHE_CONTROL},
        )

    app.add_api_route("/api/pi", read_digits, methods=["GET"])
    app.add_api_route("/", read_digits, methods=["GET"])

    @app.get("/healthz")
    def healthz():
        return {"status": "ok", "key": key}

    return app


def create_app_from_settings(settings: Settings) -> FastAPI:
    store = open_store(settings.source)
    service = RangeService(store, max_range=settings.max_range)
    return create_app(service, settings.key, default_length=settings.default_length)

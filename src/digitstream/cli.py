"""CLI implementation for digitstream."""

import asyncio
import logging
import sys
from dataclasses import replace
from typing import Optional

import typer
from dotenv import load_dotenv

from . import read_range
from .client.http import HTTPRangeFetcher
from .client.prefetch import PrefetchBufferManager
from .core.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONCURRENCY,
    DEFAULT_KEY,
    DEFAULT_LENGTH,
    DEFAULT_LOOKAHEAD,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    Settings,
)
from .core.model import DigitStreamError

app = typer.Typer(add_completion=False, help="Serve and stream very large digit sequences.")

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.command()
def serve(
    source: Optional[str] = typer.Option(None, "--source", help="Store location: directory, http(s):// URL or s3://bucket/prefix"),
    key: Optional[str] = typer.Option(None, "--key", help="Object key holding the sequence"),
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    max_range: Optional[int] = typer.Option(None, "--max-range", min=1, help="Largest length served per request"),
    log_level: str = typer.Option("info", "--log-level"),
):
    """Run the read endpoint. Unset options fall back to DIGITSTREAM_* variables."""
    import uvicorn
    from .server import create_app_from_settings

    _setup_logging(log_level)
    load_dotenv()
    try:
        overrides = {"source": source, "key": key, "host": host, "port": port, "max_range": max_range}
        settings = replace(Settings.from_env(), **{k: v for k, v in overrides.items() if v is not None})
    except ValueError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)

    logger.info("serving %s from %s on %s:%d", settings.key, settings.source, settings.host, settings.port)
    uvicorn.run(create_app_from_settings(settings), host=settings.host, port=settings.port, log_level=log_level.lower())


@app.command()
def read(
    source: str = typer.Argument(..., help="Store location: directory, http(s):// URL or s3://bucket/prefix"),
    key: str = typer.Option(DEFAULT_KEY, "--key"),
    start: int = typer.Option(0, "--start"),
    length: int = typer.Option(DEFAULT_LENGTH, "--length"),
):
    """Read one range straight from a store and write it to stdout."""
    try:
        result = read_range(source, start, length, key=key)
    except DigitStreamError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    sys.stdout.write(result.data.decode("ascii", errors="replace"))
    sys.stdout.flush()


async def _stream(url: str, limit: Optional[int], poll_interval: float, **options) -> int:
    written = 0
    fetcher = HTTPRangeFetcher(url, timeout=options["timeout"])
    async with PrefetchBufferManager(fetcher, **options) as manager:
        async for chunk in manager.chunks(poll_interval=poll_interval):
            if limit is not None:
                chunk = chunk[:limit - written]
            sys.stdout.write(chunk.decode("ascii", errors="replace"))
            sys.stdout.flush()
            written += len(chunk)
            if limit is not None and written >= limit:
                break
    return written


@app.command()
def stream(
    url: str = typer.Argument(..., help="Read endpoint, e.g. http://127.0.0.1:8000/api/pi"),
    chunk_size: int = typer.Option(DEFAULT_CHUNK_SIZE, "--chunk-size", min=1),
    concurrency: int = typer.Option(DEFAULT_CONCURRENCY, "--concurrency", min=1),
    lookahead: int = typer.Option(DEFAULT_LOOKAHEAD, "--lookahead", min=1, help="Lookahead target in chunks"),
    limit: Optional[int] = typer.Option(None, "--limit", min=0, help="Stop after N bytes"),
    retry_delay: float = typer.Option(DEFAULT_RETRY_DELAY, "--retry-delay", min=0),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", min=0),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout"),
    poll_interval: float = typer.Option(DEFAULT_POLL_INTERVAL, "--poll-interval"),
    log_level: str = typer.Option("warning", "--log-level"),
):
    """Stream the sequence from a read endpoint to stdout through a prefetch session."""
    _setup_logging(log_level)
    try:
        written = asyncio.run(_stream(
            url, limit, poll_interval,
            chunk_size=chunk_size,
            concurrency=concurrency,
            lookahead_factor=lookahead,
            retry_delay=retry_delay,
            max_retries=max_retries,
            timeout=timeout,
        ))
    except DigitStreamError as e:
        typer.echo(f"\nError: {e}", err=True)
        raise typer.Exit(code=1)
    logger.info("streamed %d bytes", written)


if __name__ == "__main__":
    app()

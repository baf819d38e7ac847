"""
Single-file HTTP fetch.

Streams a URL's body into a local file with aiohttp and aiofiles.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

import aiofiles
import aiohttp

from bulk_fetch.common.filesystem import remove_partial
from bulk_fetch.errors import ConnectError, HTTPStatusError, LocalIOError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024  # 64KB
DEFAULT_TIMEOUT = 60


async def download_file_at_url(
    url: str,
    output_path: Path,
    session: Optional[aiohttp.ClientSession] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> int:
    """
    Download a URL to a local file.

    Args:
        url: URL to fetch
        output_path: Local file to create (truncated if it exists)
        session: Optional shared aiohttp session (None = create one for this call)
        timeout: Total request timeout in seconds

    Returns:
        Number of bytes written

    Raises:
        HTTPStatusError: Non-2xx response
        ConnectError: Connection failure or timeout
        LocalIOError: Output file can't be written
    """
    output_path = Path(output_path)
    owns_session = session is None
    if session is None:
        session = aiohttp.ClientSession()

    start = time.perf_counter()
    try:
        async with session.get(
            url, timeout=aiohttp.ClientTimeout(total=timeout)
        ) as response:
            if not 200 <= response.status < 300:
                raise HTTPStatusError(response.status, url)
            bytes_written = await _stream_to_file(response, output_path)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise ConnectError(f"HTTP request failed for {url}", cause=e) from e
    finally:
        if owns_session:
            await session.close()

    logger.info(
        "Downloaded URL",
        extra={
            "url": url,
            "local_path": str(output_path),
            "bytes_written": bytes_written,
            "duration_ms": int((time.perf_counter() - start) * 1000),
        },
    )
    return bytes_written


async def _stream_to_file(response: aiohttp.ClientResponse, output_path: Path) -> int:
    bytes_written = 0
    try:
        async with aiofiles.open(output_path, "wb") as f:
            async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                await f.write(chunk)
                bytes_written += len(chunk)
    except (aiohttp.ClientError, asyncio.TimeoutError):
        # ClientOSError and TimeoutError are also OSErrors; they belong to the connection
        remove_partial(output_path)
        raise
    except OSError as e:
        remove_partial(output_path)
        raise LocalIOError(f"Cannot write {output_path}", cause=e) from e
    except BaseException:
        remove_partial(output_path)
        raise
    return bytes_written

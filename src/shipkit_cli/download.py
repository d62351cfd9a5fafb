"""Streaming download of a generated project archive."""

import socket
import threading
import time
from pathlib import Path
from typing import Callable, Optional

import httpx

from .errors import DownloadCancelledError, DownloadError, DownloadTimeoutError
from .files import delete_file


TOKEN_HEADER = "shipkit-token"
CHUNK_SIZE = 8192


class CancellationToken:
    """Cancellation signal for a transfer, optionally bound to a deadline.

    The deadline starts counting when the token is created, so create it
    right before the request.
    """

    def __init__(self, timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._deadline = clock() + timeout if timeout else None
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def timed_out(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled or self.timed_out

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(self._deadline - self._clock(), 0.0)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise DownloadCancelledError("Download cancelled")
        if self.timed_out:
            raise DownloadTimeoutError("Download timed out")


def _abort_stream(response: httpx.Response) -> None:
    """Shut down the socket under ``response`` so a blocked read returns."""
    stream = response.extensions.get("network_stream")
    sock = stream.get_extra_info("socket") if stream is not None else None
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # already closed
        return


def _start_watchdog(response: httpx.Response, cancel: CancellationToken) -> Optional[threading.Timer]:
    remaining = cancel.remaining()
    if remaining is None:
        return None
    watchdog = threading.Timer(remaining, _abort_stream, args=(response,))
    watchdog.daemon = True
    watchdog.start()
    return watchdog


def download_archive(
    client: httpx.Client,
    url: str,
    token: str,
    payload: dict,
    output_path: Path,
    *,
    cancel: Optional[CancellationToken] = None,
    chunk_size: int = CHUNK_SIZE,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> int:
    """POST ``payload`` to the build API and stream the archive to ``output_path``.

    Args:
        client: HTTP client to send the request with
        url: Build endpoint
        token: ShipKit token, sent in the ``shipkit-token`` header
        payload: JSON body describing the selection
        output_path: Where the archive is written
        cancel: Token checked between chunks. Its remaining time bounds the
            wait for the response headers; once they arrive, the connection
            is shut down when the deadline passes, even mid-read
        chunk_size: Bytes per read
        on_progress: Called with ``(downloaded, total)``; ``total`` is 0 when
            the server sends no content length

    Returns:
        int: Number of bytes written

    Raises:
        DownloadError: Non-200 response or transport failure
        DownloadTimeoutError: Deadline passed before the stream completed
        DownloadCancelledError: ``cancel.cancel()`` was called mid-transfer

    The partial file is removed on every failure path.
    """
    if cancel is None:
        cancel = CancellationToken()

    remaining = cancel.remaining()
    timeout = httpx.Timeout(remaining) if remaining is not None else httpx.Timeout(None)
    downloaded = 0

    try:
        cancel.raise_if_cancelled()
        with client.stream(
            "POST",
            url,
            json=payload,
            headers={TOKEN_HEADER: token},
            timeout=timeout,
            follow_redirects=True,
        ) as response:
            watchdog = _start_watchdog(response, cancel)
            try:
                if response.status_code != 200:
                    response.read()
                    body_sample = response.text[:400]
                    raise DownloadError(
                        f"Build API returned {response.status_code}",
                        status_code=response.status_code,
                        detail=f"Headers: {dict(response.headers)}\nBody (truncated): {body_sample}",
                    )
                total_size = int(response.headers.get("content-length", 0))
                with open(output_path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=chunk_size):
                        cancel.raise_if_cancelled()
                        f.write(chunk)
                        downloaded += len(chunk)
                        if on_progress:
                            on_progress(downloaded, total_size)
                # A body without a length ends at EOF, which an aborted socket also produces
                cancel.raise_if_cancelled()
            finally:
                if watchdog is not None:
                    watchdog.cancel()
    except DownloadError:
        delete_file(output_path)
        raise
    except httpx.TimeoutException as e:
        delete_file(output_path)
        raise DownloadTimeoutError("Download timed out", detail=str(e)) from e
    except httpx.HTTPError as e:
        delete_file(output_path)
        if cancel.timed_out:
            raise DownloadTimeoutError("Download timed out", detail=str(e)) from e
        raise DownloadError(f"Error downloading archive: {e}", detail=str(e)) from e
    except BaseException:
        delete_file(output_path)
        raise

    return downloaded

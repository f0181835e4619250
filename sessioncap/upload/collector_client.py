"""HTTP client for the remote collector that receives session artifacts."""

import asyncio
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Dict, List, Sequence

import aiohttp

from ..errors import UploadFailureError

logger = logging.getLogger(__name__)

IMAGE_UPLOAD_PATH = "/upload/image"
AUDIO_UPLOAD_PATH = "/upload/audio"


class CollectorClient:
    """Posts multipart forms to the collector.

    The public methods are synchronous; each call runs its request on a
    private event loop, so they can be used from any thread that is not
    already running a loop.
    """

    def __init__(self, base_url: str, timeout_seconds: float = 60.0):
        """Initialize collector client.

        Args:
            base_url: Collector base URL, e.g. ``http://localhost:3000``
            timeout_seconds: Total timeout for one request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

        logger.info(f"CollectorClient initialized with base URL: {self.base_url}")

    def upload_images(self,
                      bot_id: str,
                      session_id: str,
                      current_time: str,
                      paths: Sequence[Path]) -> int:
        """Send every snapshot of a session in one request.

        Args:
            bot_id: Caller-supplied bot identifier
            session_id: Session identifier
            current_time: Session timestamp (YYYYMMDD_HHMMSS)
            paths: Snapshot files, attached as repeated ``file`` parts

        Returns:
            HTTP status code

        Raises:
            UploadFailureError: On transport errors or an error status
        """
        fields = {
            "bot_id": bot_id,
            "current_time": current_time,
            "session_id": session_id,
        }
        return self._run(self._post_files(IMAGE_UPLOAD_PATH, fields, list(paths), "image/jpeg"))

    def upload_audio(self,
                     bot_id: str,
                     session_id: str,
                     max_speakers: int,
                     path: Path) -> int:
        """Send the session audio artifact.

        Returns:
            HTTP status code

        Raises:
            UploadFailureError: On transport errors or an error status
        """
        fields = {
            "session_id": session_id,
            "max_speakers": str(max_speakers),
            "bot_id": bot_id,
        }
        return self._run(self._post_files(AUDIO_UPLOAD_PATH, fields, [Path(path)], "audio/wav"))

    def _run(self, coroutine) -> int:
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(coroutine)
        finally:
            loop.close()

    async def _post_files(self,
                          endpoint: str,
                          fields: Dict[str, str],
                          paths: List[Path],
                          content_type: str) -> int:
        url = f"{self.base_url}{endpoint}"
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        try:
            with ExitStack() as stack:
                form = stack.enter_context(aiohttp.MultipartWriter("form-data"))
                for name, value in fields.items():
                    part = form.append(value)
                    part.set_content_disposition("form-data", name=name)
                for path in paths:
                    handle = stack.enter_context(open(path, 'rb'))
                    part = form.append(handle, {"Content-Type": content_type})
                    part.set_content_disposition("form-data", name="file", filename=Path(path).name)

                async with aiohttp.ClientSession(timeout=timeout) as session:
                    async with session.post(url, data=form) as response:
                        if response.status >= 400:
                            error_text = await response.text()
                            raise UploadFailureError(
                                f"Collector rejected {endpoint}: {response.status} - {error_text[:200]}",
                                status=response.status,
                            )
                        logger.info(f"Uploaded {len(paths)} file(s) to {url}: {response.status} {response.reason}")
                        return response.status
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise UploadFailureError(f"Transfer to {url} failed: {e!r}") from e

"""
RunLauncher for triggering remote jobs from scheduled timers.
"""

import logging
from typing import Optional, Dict, Any

import httpx

logger = logging.getLogger(__name__)


class RunLauncher:
    """Triggers named jobs on the remote job server."""

    def __init__(
        self,
        server_url: str,
        application_id: Optional[str] = None,
        master_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the RunLauncher.

        Args:
            server_url: Base URL of the job server
            application_id: Application identifier sent with each request
            master_key: Privileged key sent with each request
            timeout: Request timeout in seconds
            client: Optional preconfigured HTTP client
        """
        self.server_url = server_url.rstrip("/")
        self.application_id = application_id
        self.master_key = master_key
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "RunLauncher":
        return cls(
            server_url=settings.job_server_url,
            application_id=settings.application_id,
            master_key=settings.master_key,
            timeout=settings.trigger_timeout
        )

    def _build_job_url(self, job_name: str) -> str:
        return f"{self.server_url}/jobs/{job_name}"

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.application_id:
            headers["X-Parse-Application-Id"] = self.application_id
        if self.master_key:
            headers["X-Parse-Master-Key"] = self.master_key
        return headers

    async def trigger(self, job_name: str, params: Optional[Dict[str, Any]] = None) -> bool:
        """
        Trigger a job on the job server.

        Failures are logged and never raised. Nothing is retried: a missed
        repeating job runs again on its next fire, a missed one-shot job is lost.

        Args:
            job_name: Name of the job to run
            params: Optional JSON payload for the job

        Returns:
            True if the job server accepted the request, False otherwise
        """
        try:
            request_kwargs: Dict[str, Any] = {"headers": self._get_headers()}
            if params:
                request_kwargs["json"] = params

            response = await self.client.post(self._build_job_url(job_name), **request_kwargs)
            response.raise_for_status()

            logger.info(f"Job {job_name} launched.")
            return True

        except httpx.HTTPStatusError as e:
            logger.error(f"Job {job_name} was rejected with status {e.response.status_code}: {e.response.text}")
            return False
        except Exception as e:
            logger.error(f"Failed to launch job {job_name}: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()

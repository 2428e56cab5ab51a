from __future__ import annotations

from dataclasses import dataclass

from mobrel.core.config import ReleaseConfig
from mobrel.core.result import Err, Ok, Result
from mobrel.net.http import HttpClient, TransportError, json_body
from mobrel.services.release.environment import BranchRef
from mobrel.services.release.errors import ConflictSignal, RemoteError
from mobrel.services.release.model import BuildConfigPayload, PublishMethod
from mobrel.services.release.timeouts import APPCENTER_TIMEOUT_SECONDS

type PublishError = ConflictSignal | RemoteError | TransportError


@dataclass(frozen=True, slots=True)
class PublishedConfig:
    method: PublishMethod
    branch: BranchRef
    body: object


def branch_config_url(base_url: str, owner: str, app: str, branch: BranchRef) -> str:
    return f"{base_url.rstrip('/')}/apps/{owner}/{app}/branches/{branch.url_encoded}/config"


class BranchConfigPublisher:
    """Send a branch configuration to the build service.

    2xx resolves with the stored body. 409 is a ``ConflictSignal`` (branch
    already configured), never a ``RemoteError``.
    """

    def __init__(self, *, http: HttpClient, config: ReleaseConfig) -> None:
        self._http = http
        self._config = config

    def url_for(self, branch: BranchRef) -> str:
        return branch_config_url(
            self._config.appcenter_base_url,
            self._config.owner_name or "",
            self._config.app_name or "",
            branch,
        )

    def publish(
        self,
        payload: BuildConfigPayload,
        branch: BranchRef,
        method: PublishMethod,
    ) -> Result[PublishedConfig, PublishError]:
        url = self.url_for(branch)
        result = self._http.request(
            method.http_method,
            url,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "X-API-Token": self._config.api_token or "",
            },
            body=json_body(payload.to_json()),
            timeout=APPCENTER_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return result

        response = result.value
        if response.status == 409:
            return Err(ConflictSignal(url=url, text=response.text))
        if not response.ok:
            return Err(RemoteError(url=url, status=response.status, text=response.text))

        decoded = response.json()
        if isinstance(decoded, Err):
            return Err(RemoteError(url=url, status=response.status, text=decoded.error))
        return Ok(PublishedConfig(method=method, branch=branch, body=decoded.value))

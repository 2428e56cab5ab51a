"""Device-management (AirWatch / Workspace ONE UEM) REST client.

Each operation is a single JSON call over ``HttpClient``. Non-2xx answers
become ``RemoteError`` with the response text; unreachable hosts become
``TransportError``.
"""

from __future__ import annotations

import base64
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol
from urllib.parse import urlencode

from mobrel.core.config import UPLOAD_FIELDS, MissingConfigError, ReleaseConfig
from mobrel.core.result import Err, Ok, Result
from mobrel.core.structured import (
    as_obj_list,
    as_str_dict,
    get_int,
    get_list,
    get_str,
    get_value_id,
)
from mobrel.net.http import HttpClient, TransportError, json_body
from mobrel.services.release.errors import ArtifactError, RemoteError
from mobrel.services.release.model import AppVersionRecord
from mobrel.services.release.timeouts import (
    AIRWATCH_TIMEOUT_SECONDS,
    AIRWATCH_UPLOAD_TIMEOUT_SECONDS,
)

type ServiceError = RemoteError | TransportError

_SUPPORTED_MODELS = {
    "Model": [
        {"ModelId": 1, "ModelName": "iPhone"},
        {"ModelId": 2, "ModelName": "iPad"},
        {"ModelId": 3, "ModelName": "iPod Touch"},
    ]
}


class DeviceManagementClient(Protocol):
    """Operations the release orchestrator needs from the MDM service."""

    def list_versions(self, bundle_id: str) -> Result[list[AppVersionRecord], ServiceError]: ...

    def upload_blob(self, path: Path) -> Result[int, ServiceError | ArtifactError]: ...

    def begin_install(
        self, blob_id: int, bundle_id: str, version: str, app_name: str
    ) -> Result[int, ServiceError]: ...

    def retire(
        self, records: Sequence[AppVersionRecord]
    ) -> Result[tuple[AppVersionRecord, ...], ServiceError]: ...

    def assign_policy_groups(
        self, app_id: int, group_ids: Sequence[int]
    ) -> Result[None, ServiceError]: ...

    def resolve_policy_group_ids(
        self,
        ad_group: str,
        bundle_id: str,
        version: str,
        previous: Sequence[AppVersionRecord],
        active: Sequence[AppVersionRecord],
    ) -> Result[list[int], ServiceError]: ...


def parse_app_record(item: object) -> AppVersionRecord | None:
    d = as_str_dict(item)
    if d is None:
        return None
    app_id = get_value_id(d, "Id")
    if app_id is None:
        return None
    return AppVersionRecord(
        id=app_id,
        bundle_id=get_str(d, "BundleId") or "",
        version=get_str(d, "AppVersion") or get_str(d, "ActualFileVersion") or "",
        status=get_str(d, "Status") or "",
    )


class AirwatchClient:
    def __init__(
        self,
        *,
        http: HttpClient,
        base_url: str,
        tenant_code: str,
        username: str,
        password: str,
        org_group_id: str,
    ) -> None:
        self._http = http
        self._base = base_url.rstrip("/")
        self._org_group_id = org_group_id
        credentials = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        self._headers = {
            "Accept": "application/json",
            "Authorization": f"Basic {credentials}",
            "aw-tenant-code": tenant_code,
        }

    @classmethod
    def from_config(
        cls, http: HttpClient, config: ReleaseConfig
    ) -> Result[AirwatchClient, MissingConfigError]:
        required = config.require(UPLOAD_FIELDS)
        if isinstance(required, Err):
            return required
        return Ok(
            cls(
                http=http,
                base_url=config.airwatch_base_url or "",
                tenant_code=config.airwatch_tenant_code or "",
                username=config.airwatch_username or "",
                password=config.airwatch_password or "",
                org_group_id=config.airwatch_org_group_id or "",
            )
        )

    def _url(self, path: str, query: dict[str, str] | None = None) -> str:
        url = f"{self._base}/API/{path}"
        if query:
            url += "?" + urlencode(query)
        return url

    def _call(
        self,
        method: str,
        url: str,
        *,
        payload: object = None,
        raw: bytes | None = None,
        timeout: float = AIRWATCH_TIMEOUT_SECONDS,
    ) -> Result[object, ServiceError]:
        headers = dict(self._headers)
        body: bytes | None = None
        if raw is not None:
            headers["Content-Type"] = "application/octet-stream"
            body = raw
        elif payload is not None:
            headers["Content-Type"] = "application/json"
            body = json_body(payload)

        result = self._http.request(method, url, headers=headers, body=body, timeout=timeout)
        if isinstance(result, Err):
            return result

        response = result.value
        if not response.ok:
            return Err(RemoteError(url=url, status=response.status, text=response.text))
        decoded = response.json()
        if isinstance(decoded, Err):
            return Err(RemoteError(url=url, status=response.status, text=decoded.error))
        return Ok(decoded.value)

    def list_versions(self, bundle_id: str) -> Result[list[AppVersionRecord], ServiceError]:
        """Known versions of ``bundle_id``; no data (204, empty body) is ``[]``."""
        url = self._url("mam/apps/search", {"bundleid": bundle_id})
        result = self._call("GET", url)
        if isinstance(result, Err):
            return result

        data = as_str_dict(result.value)
        items = get_list(data, "Application") if data is not None else None
        if items is None:
            return Ok([])

        records: list[AppVersionRecord] = []
        for item in items:
            record = parse_app_record(item)
            if record is not None:
                records.append(record)
        return Ok(records)

    def upload_blob(self, path: Path) -> Result[int, ServiceError | ArtifactError]:
        try:
            content = path.read_bytes()
        except OSError as e:
            return Err(ArtifactError(message=f"cannot read artifact: {path}", hint=str(e)))

        url = self._url(
            "mam/blobs/uploadblob",
            {"filename": path.name, "organizationgroupid": self._org_group_id},
        )
        result = self._call("POST", url, raw=content, timeout=AIRWATCH_UPLOAD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return result

        data = as_str_dict(result.value)
        blob_id = get_int(data, "Value") if data is not None else None
        if blob_id is None:
            return Err(RemoteError(url=url, status=200, text=f"no blob id in {result.value!r}"))
        return Ok(blob_id)

    def begin_install(
        self, blob_id: int, bundle_id: str, version: str, app_name: str
    ) -> Result[int, ServiceError]:
        url = self._url("mam/apps/internal/begininstall")
        payload = {
            "BlobId": str(blob_id),
            "DeviceType": "Apple",
            "ApplicationName": app_name,
            "AppVersion": version,
            "BundleId": bundle_id,
            "SupportedModels": _SUPPORTED_MODELS,
            "PushMode": "Auto",
            "LocationGroupId": self._org_group_id,
            "EnableProvisioning": False,
            "UploadViaLink": False,
        }
        result = self._call("POST", url, payload=payload)
        if isinstance(result, Err):
            return result

        data = as_str_dict(result.value)
        app_id = get_value_id(data, "Id") if data is not None else None
        if app_id is None:
            return Err(RemoteError(url=url, status=200, text=f"no app id in {result.value!r}"))
        return Ok(app_id)

    def retire(
        self, records: Sequence[AppVersionRecord]
    ) -> Result[tuple[AppVersionRecord, ...], ServiceError]:
        """Retire every active record; records already retired are skipped."""
        retired: list[AppVersionRecord] = []
        for record in records:
            if not record.is_active:
                continue
            result = self._call("POST", self._url(f"mam/apps/internal/{record.id}/retire"))
            if isinstance(result, Err):
                return result
            retired.append(record)
        return Ok(tuple(retired))

    def assign_policy_groups(
        self, app_id: int, group_ids: Sequence[int]
    ) -> Result[None, ServiceError]:
        payload = {
            "SmartGroupIds": list(group_ids),
            "DeploymentParameters": {"PushMode": "Auto"},
        }
        result = self._call(
            "POST", self._url(f"mam/apps/internal/{app_id}/assignments"), payload=payload
        )
        return result.map(lambda _: None)

    def resolve_policy_group_ids(
        self,
        ad_group: str,
        bundle_id: str,
        version: str,
        previous: Sequence[AppVersionRecord],
        active: Sequence[AppVersionRecord],
    ) -> Result[list[int], ServiceError]:
        """Smart groups named after the directory group.

        Exact name matches win over partial matches returned by the search.
        The record context does not influence the lookup.
        """
        del bundle_id, version, previous, active
        url = self._url(
            "mdm/smartgroups/search",
            {"name": ad_group, "organizationgroupid": self._org_group_id},
        )
        result = self._call("GET", url)
        if isinstance(result, Err):
            return result

        data = as_str_dict(result.value)
        groups = as_obj_list(data.get("SmartGroups")) if data is not None else None
        exact: list[int] = []
        partial: list[int] = []
        for item in groups or []:
            g = as_str_dict(item)
            if g is None:
                continue
            group_id = get_int(g, "SmartGroupID")
            if group_id is None:
                group_id = get_value_id(g, "Id")
            if group_id is None:
                continue
            target = exact if get_str(g, "Name") == ad_group else partial
            if group_id not in target:
                target.append(group_id)

        ids = exact or partial
        if not ids:
            return Err(
                RemoteError(url=url, status=404, text=f"no smart group matches {ad_group!r}")
            )
        return Ok(ids)

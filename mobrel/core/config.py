"""Typed release configuration.

The process environment is read exactly once (``ReleaseConfig.from_env``) at
CLI start and the resulting frozen record is passed down to every component.
Nothing below the CLI touches ``os.environ``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from pathlib import Path

from .result import Err, Ok, Result

__all__ = [
    "ReleaseConfig",
    "MissingConfigError",
    "ENV_NAMES",
    "BRANCH_CONFIG_FIELDS",
    "PROVISIONING_FIELDS",
    "UPLOAD_FIELDS",
    "DEFAULT_APPCENTER_BASE_URL",
    "DEFAULT_FORWARD_PREFIX",
    "DEFAULT_PROFILE_TYPE",
    "strip_branch_ref",
]

DEFAULT_APPCENTER_BASE_URL = "https://api.appcenter.ms/v0.1"
DEFAULT_FORWARD_PREFIX = "BUILD_SECRET_"
DEFAULT_PROFILE_TYPE = "enterprise"
DEFAULT_NODE_VERSION = "12.x"

_HEADS_PREFIX = "refs/heads/"

# Field name -> process environment variable.
ENV_NAMES: dict[str, str] = {
    "api_token": "APPCENTER_API_TOKEN",
    "app_name": "APPCENTER_APP_NAME",
    "owner_name": "APPCENTER_OWNER_NAME",
    "signing_passphrase": "MATCH_PASSWORD",
    "branch": "GITHUB_REF",
    "credential_repo_url": "IOS_CERTIFICATES_GIT_URL",
    "credential_repo_token": "BUNDLE_GIT__COM",
    "source_control_token": "GH_TOKEN",
    "project_path": "PROJECT_OR_WORKSPACE_PATH",
    "scheme_name": "XCODE_SCHEME_NAME",
    "telemetry_token": "SENTRY_AUTH_TOKEN",
    "appcenter_base_url": "APPCENTER_BASE_URL",
    "forward_prefix": "MOBREL_FORWARD_PREFIX",
    "profile_type": "IOS_PROFILE_TYPE",
    "node_version": "MOBREL_NODE_VERSION",
    "workspace_dir": "GITHUB_WORKSPACE",
    "airwatch_base_url": "AIRWATCH_BASE_URL",
    "airwatch_tenant_code": "AIRWATCH_TENANT_CODE",
    "airwatch_username": "AIRWATCH_USERNAME",
    "airwatch_password": "AIRWATCH_PASSWORD",
    "airwatch_org_group_id": "AIRWATCH_ORG_GROUP_ID",
    "ad_group": "AD_GROUP",
    "artifact_path": "IPA_PATH",
}

BRANCH_CONFIG_FIELDS: tuple[str, ...] = (
    "api_token",
    "app_name",
    "owner_name",
    "signing_passphrase",
    "branch",
    "credential_repo_token",
    "source_control_token",
    "project_path",
    "scheme_name",
)

# scheme_name comes first: provisioning must fail fast on it before any clone.
PROVISIONING_FIELDS: tuple[str, ...] = (
    "scheme_name",
    "signing_passphrase",
    "credential_repo_url",
    "credential_repo_token",
    "app_name",
)

UPLOAD_FIELDS: tuple[str, ...] = (
    "airwatch_base_url",
    "airwatch_tenant_code",
    "airwatch_username",
    "airwatch_password",
    "airwatch_org_group_id",
    "ad_group",
)


@dataclass(frozen=True, slots=True)
class MissingConfigError:
    """One or more required configuration values are absent.

    ``keys`` holds the environment variable names, all of them, so operators
    can fix everything in one pass.
    """

    keys: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"missing configuration: {', '.join(self.keys)}"

    @property
    def hint(self) -> str:
        return "Export the listed environment variables and retry"


def strip_branch_ref(ref: str) -> str:
    """``refs/heads/feature/x`` -> ``feature/x``; other values are kept as-is."""
    if ref.startswith(_HEADS_PREFIX):
        return ref[len(_HEADS_PREFIX) :]
    return ref


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Immutable configuration record for one pipeline run."""

    api_token: str | None = None
    app_name: str | None = None
    owner_name: str | None = None
    signing_passphrase: str | None = None
    branch: str | None = None
    credential_repo_url: str | None = None
    credential_repo_token: str | None = None
    source_control_token: str | None = None
    project_path: str | None = None
    scheme_name: str | None = None
    telemetry_token: str | None = None
    appcenter_base_url: str = DEFAULT_APPCENTER_BASE_URL
    forward_prefix: str = DEFAULT_FORWARD_PREFIX
    forwarded: tuple[tuple[str, str], ...] = ()
    profile_type: str = DEFAULT_PROFILE_TYPE
    node_version: str = DEFAULT_NODE_VERSION
    workspace_dir: Path = Path(".")
    airwatch_base_url: str | None = None
    airwatch_tenant_code: str | None = None
    airwatch_username: str | None = None
    airwatch_password: str | None = None
    airwatch_org_group_id: str | None = None
    ad_group: str | None = None
    artifact_path: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> ReleaseConfig:
        """Build the record from a process environment mapping.

        Empty values count as absent. Variables starting with the forward
        prefix are captured verbatim, sorted by name.
        """

        def get(field_name: str) -> str | None:
            value = environ.get(ENV_NAMES[field_name], "").strip()
            return value or None

        branch = get("branch")
        if branch is not None:
            branch = strip_branch_ref(branch) or None
        if branch is None:
            head_ref = environ.get("GITHUB_HEAD_REF", "").strip()
            branch = head_ref or None

        forward_prefix = get("forward_prefix") or DEFAULT_FORWARD_PREFIX
        forwarded = tuple(
            sorted(
                (key, value)
                for key, value in environ.items()
                if key.startswith(forward_prefix) and value
            )
        )

        workspace = get("workspace_dir")
        artifact = get("artifact_path")

        return cls(
            api_token=get("api_token"),
            app_name=get("app_name"),
            owner_name=get("owner_name"),
            signing_passphrase=get("signing_passphrase"),
            branch=branch,
            credential_repo_url=get("credential_repo_url"),
            credential_repo_token=get("credential_repo_token"),
            source_control_token=get("source_control_token"),
            project_path=get("project_path"),
            scheme_name=get("scheme_name"),
            telemetry_token=get("telemetry_token"),
            appcenter_base_url=(get("appcenter_base_url") or DEFAULT_APPCENTER_BASE_URL).rstrip(
                "/"
            ),
            forward_prefix=forward_prefix,
            forwarded=forwarded,
            profile_type=get("profile_type") or DEFAULT_PROFILE_TYPE,
            node_version=get("node_version") or DEFAULT_NODE_VERSION,
            workspace_dir=Path(workspace).expanduser() if workspace else Path("."),
            airwatch_base_url=get("airwatch_base_url"),
            airwatch_tenant_code=get("airwatch_tenant_code"),
            airwatch_username=get("airwatch_username"),
            airwatch_password=get("airwatch_password"),
            airwatch_org_group_id=get("airwatch_org_group_id"),
            ad_group=get("ad_group"),
            artifact_path=Path(artifact).expanduser() if artifact else None,
        )

    def missing(self, field_names: Iterable[str]) -> tuple[str, ...]:
        """Environment variable names of the given fields that are unset."""
        known = {f.name for f in fields(self)}
        out: list[str] = []
        for name in field_names:
            if name not in known:
                raise KeyError(f"unknown config field: {name}")
            if getattr(self, name) is None and ENV_NAMES[name] not in out:
                out.append(ENV_NAMES[name])
        return tuple(out)

    def require(self, field_names: Iterable[str]) -> Result[None, MissingConfigError]:
        """Ok when every field is set, else one error listing all missing keys."""
        missing = self.missing(field_names)
        if missing:
            return Err(MissingConfigError(keys=missing))
        return Ok(None)

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal


class EnvironmentClass(Enum):
    DEVELOPMENT = "development"
    QA = "qa"
    PRODUCTION = "production"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


class PublishMethod(Enum):
    """How the branch config is sent: create (POST) or update (PUT)."""

    CREATE = "POST"
    UPDATE = "PUT"

    @property
    def http_method(self) -> str:
        return self.value


HookStage = Literal["postClone", "preBuild", "postBuild"]

# Stage -> script file looked up at the workspace root.
HOOK_SCRIPTS: tuple[tuple[HookStage, str], ...] = (
    ("postClone", "appcenter-post-clone.sh"),
    ("preBuild", "appcenter-pre-build.sh"),
    ("postBuild", "appcenter-post-build.sh"),
)


@dataclass(frozen=True, slots=True)
class CredentialArtifactSet:
    """Encrypted files picked from the credential repository."""

    certificate_file: str  # .p12
    public_cert_file: str  # .cer
    provisioning_profile_file: str


@dataclass(frozen=True, slots=True)
class DecryptedCredentialPaths:
    private_key: Path
    certificate: Path
    pkcs12_bundle: Path
    provisioning_profile: Path
    selection: CredentialArtifactSet


@dataclass(frozen=True, slots=True)
class SigningMaterial:
    """Base64 payloads sent to the build service for code signing."""

    certificate_encoded: str
    certificate_filename: str
    profile_encoded: str
    profile_filename: str


@dataclass(frozen=True, slots=True)
class EnvironmentVariable:
    name: str
    value: str
    is_secret: bool

    def to_json(self) -> dict[str, object]:
        return {"isSecret": self.is_secret, "name": self.name, "value": self.value}


@dataclass(frozen=True, slots=True)
class SigningBlock:
    certificate_encoded: str
    certificate_filename: str
    certificate_password: str
    profile_encoded: str
    profile_filename: str
    scheme: str
    project_path: str


@dataclass(frozen=True, slots=True)
class BuildConfigPayload:
    """Body of the branch configuration request."""

    environment_variables: tuple[EnvironmentVariable, ...]
    hooks: dict[HookStage, str]
    signing: SigningBlock
    node_version: str
    package_json_path: str = "package.json"

    def to_json(self) -> dict[str, object]:
        return {
            "environmentVariables": [v.to_json() for v in self.environment_variables],
            "signed": True,
            "toolsets": {
                "buildscripts": {self.package_json_path: dict(self.hooks)},
                "javascript": {
                    "nodeVersion": self.node_version,
                    "packageJsonPath": self.package_json_path,
                    "runTests": False,
                },
                "xcode": {
                    "appExtensionProvisioningProfileFiles": [],
                    "certificateEncoded": self.signing.certificate_encoded,
                    "certificateFilename": self.signing.certificate_filename,
                    "certificatePassword": self.signing.certificate_password,
                    "forceLegacyBuildSystem": True,
                    "projectOrWorkspacePath": self.signing.project_path,
                    "provisioningProfileEncoded": self.signing.profile_encoded,
                    "provisioningProfileFilename": self.signing.profile_filename,
                    "scheme": self.signing.scheme,
                },
            },
            "trigger": "manual",
        }


@dataclass(frozen=True, slots=True)
class ArtifactDetails:
    """Metadata read from a built .ipa."""

    version: str
    bundle_id: str
    app_name: str
    path: Path


@dataclass(frozen=True, slots=True)
class AppVersionRecord:
    """An app version already known to the device-management service."""

    id: int
    bundle_id: str
    version: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == "Active"


class ReleaseState(Enum):
    START = "start"
    DETAILS_LOADED = "details_loaded"
    PRIOR_VERSIONS_QUERIED = "prior_versions_queried"
    GROUPS_RESOLVED = "groups_resolved"
    UPLOADED = "uploaded"
    INSTALLED = "installed"
    RETIRED = "retired"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    state: ReleaseState
    artifact: ArtifactDetails
    blob_id: int
    app_id: int
    group_ids: tuple[int, ...]
    retired: tuple[AppVersionRecord, ...] = ()
    assigned: bool = False
    previous: tuple[AppVersionRecord, ...] = ()

"""Error types for the release pipeline.

Every error exposes ``message`` and an optional ``hint`` so the CLI can
render any of them the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from mobrel.core.config import MissingConfigError
from mobrel.net.http import TransportError
from mobrel.services.release.model import ReleaseState

ProvisioningStep = Literal["fetch", "list", "decrypt", "convert", "export", "read"]
CredentialKind = Literal["certificate", "public_certificate", "provisioning_profile"]

__all__ = [
    "ArtifactError",
    "ConflictSignal",
    "CredentialKind",
    "CredentialNotFoundError",
    "MissingConfigError",
    "PipelineError",
    "ProvisioningError",
    "ProvisioningStep",
    "ReleaseStepError",
    "RemoteError",
    "TransportError",
]


@dataclass(frozen=True, slots=True)
class CredentialNotFoundError:
    """No usable certificate or profile for the resolved environment."""

    kind: CredentialKind
    message: str
    candidates: tuple[str, ...] = ()

    @property
    def hint(self) -> str | None:
        if self.candidates:
            return "candidates: " + ", ".join(self.candidates)
        return "Check the credential repository layout and XCODE_SCHEME_NAME"


@dataclass(frozen=True, slots=True)
class RemoteError:
    """Remote service answered with a non-2xx, non-409 status."""

    url: str
    status: int
    text: str

    @property
    def message(self) -> str:
        return f"HTTP {self.status} from {self.url}"

    @property
    def hint(self) -> str | None:
        return self.text.strip() or None


@dataclass(frozen=True, slots=True)
class ConflictSignal:
    """409 from the build service: the branch is already configured."""

    url: str
    text: str = ""

    @property
    def message(self) -> str:
        return f"branch configuration already exists ({self.url})"

    @property
    def hint(self) -> str | None:
        return "Publish with --method update to overwrite it"


@dataclass(frozen=True, slots=True)
class ProvisioningError:
    """Credential repository fetch or decryption failed."""

    step: ProvisioningStep
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ArtifactError:
    """The build output is missing or its metadata is unreadable."""

    message: str
    hint: str | None = None


type PipelineError = (
    MissingConfigError
    | CredentialNotFoundError
    | TransportError
    | RemoteError
    | ConflictSignal
    | ProvisioningError
    | ArtifactError
)


@dataclass(frozen=True, slots=True)
class ReleaseStepError:
    """A release run stopped; ``state`` is the last state it reached."""

    state: ReleaseState
    step: str
    cause: PipelineError

    @property
    def message(self) -> str:
        return f"{self.step} failed: {self.cause.message}"

    @property
    def hint(self) -> str | None:
        return self.cause.hint

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from mobrel.core.config import BRANCH_CONFIG_FIELDS, MissingConfigError, ReleaseConfig
from mobrel.core.result import Err, Ok, Result
from mobrel.services.release.environment import BranchRef
from mobrel.services.release.model import (
    HOOK_SCRIPTS,
    BuildConfigPayload,
    EnvironmentVariable,
    HookStage,
    SigningBlock,
    SigningMaterial,
)

# The branch is passed explicitly, so only the remaining fields are checked here.
_PAYLOAD_FIELDS = tuple(f for f in BRANCH_CONFIG_FIELDS if f != "branch")


def detect_build_hooks(root: Path) -> dict[HookStage, str]:
    """Hook stages whose script exists at ``root``."""
    return {stage: script for stage, script in HOOK_SCRIPTS if (root / script).is_file()}


def _fixed_variables(config: ReleaseConfig) -> list[EnvironmentVariable]:
    candidates: list[tuple[str, str | None, bool]] = [
        ("GH_TOKEN", config.source_control_token, True),
        ("BUNDLE_GIT__COM", config.credential_repo_token, True),
        ("APPCENTER_OWNER_NAME", config.owner_name, False),
        ("APPCENTER_APP_NAME", config.app_name, False),
        ("APPCENTER_API_TOKEN", config.api_token, True),
        ("SENTRY_AUTH_TOKEN", config.telemetry_token, True),
    ]
    return [
        EnvironmentVariable(name=name, value=value, is_secret=secret)
        for name, value, secret in candidates
        if value is not None
    ]


def build_branch_config(
    branch: BranchRef,
    config: ReleaseConfig,
    signing: SigningMaterial,
    hooks: Mapping[HookStage, str],
) -> Result[BuildConfigPayload, MissingConfigError]:
    """Assemble the branch configuration body.

    Forwarded variables come first (sorted, all secret), followed by the
    fixed pipeline variables. A forwarded variable that reuses a fixed name
    is dropped so names stay unique. Fails with every missing key at once.
    """
    del branch  # the payload itself is branch-independent; the URL carries it

    required = config.require(_PAYLOAD_FIELDS)
    if isinstance(required, Err):
        return required

    fixed = _fixed_variables(config)
    fixed_names = {v.name for v in fixed}
    forwarded: list[EnvironmentVariable] = []
    seen: set[str] = set()
    for name, value in sorted(config.forwarded):
        if name in fixed_names or name in seen:
            continue
        seen.add(name)
        forwarded.append(EnvironmentVariable(name=name, value=value, is_secret=True))

    known_stages = {stage for stage, _ in HOOK_SCRIPTS}
    hook_map: dict[HookStage, str] = {
        stage: script for stage, script in hooks.items() if stage in known_stages
    }

    return Ok(
        BuildConfigPayload(
            environment_variables=(*forwarded, *fixed),
            hooks=hook_map,
            signing=SigningBlock(
                certificate_encoded=signing.certificate_encoded,
                certificate_filename=signing.certificate_filename,
                certificate_password=config.signing_passphrase or "",
                profile_encoded=signing.profile_encoded,
                profile_filename=signing.profile_filename,
                scheme=config.scheme_name or "",
                project_path=config.project_path or "",
            ),
            node_version=config.node_version,
        )
    )

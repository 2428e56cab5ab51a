from __future__ import annotations

from pathlib import Path

from mobrel.core.config import BRANCH_CONFIG_FIELDS, PROVISIONING_FIELDS, ReleaseConfig
from mobrel.core.result import Err, Ok, Result
from mobrel.net.http import HttpClient
from mobrel.output.console import ConsoleProtocol, Style
from mobrel.services.release.branch_config import build_branch_config, detect_build_hooks
from mobrel.services.release.environment import BranchRef
from mobrel.services.release.errors import ConflictSignal, PipelineError
from mobrel.services.release.model import PublishMethod
from mobrel.services.release.provisioner import (
    CredentialProvisioner,
    CredentialTools,
    read_signing_material,
)
from mobrel.services.release.publisher import BranchConfigPublisher, PublishedConfig


def configure_branch(
    *,
    config: ReleaseConfig,
    tools: CredentialTools,
    http: HttpClient,
    console: ConsoleProtocol,
    work_dir: Path,
    method: PublishMethod = PublishMethod.CREATE,
) -> Result[PublishedConfig, PipelineError]:
    """Provision signing credentials and push the branch build configuration.

    Every required key is validated up front in one batch. A create that hits
    a 409 is retried once as an update.
    """
    required = config.require((*BRANCH_CONFIG_FIELDS, *PROVISIONING_FIELDS))
    if isinstance(required, Err):
        return required
    assert config.branch is not None

    branch = BranchRef.from_ref(config.branch)
    env = branch.environment
    console.header(f"Branch {branch.name} ({env})")

    provisioner = CredentialProvisioner(
        tools=tools, config=config, work_dir=work_dir, console=console
    )
    paths = provisioner.provision(env)
    if isinstance(paths, Err):
        return paths

    signing = read_signing_material(paths.value)
    if isinstance(signing, Err):
        return signing

    hooks = detect_build_hooks(config.workspace_dir)
    if hooks:
        console.print("hooks: " + ", ".join(f"{k}={v}" for k, v in hooks.items()), Style.DIM)

    payload = build_branch_config(branch, config, signing.value, hooks)
    if isinstance(payload, Err):
        return payload

    publisher = BranchConfigPublisher(http=http, config=config)
    published = publisher.publish(payload.value, branch, method)
    if isinstance(published, Err) and isinstance(published.error, ConflictSignal):
        if method is PublishMethod.UPDATE:
            return published
        console.info("Branch already configured; updating it")
        published = publisher.publish(payload.value, branch, PublishMethod.UPDATE)

    if isinstance(published, Err):
        return published

    console.success(f"Build configuration published for {branch.name}")
    return Ok(published.value)

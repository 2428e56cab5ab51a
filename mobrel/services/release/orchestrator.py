"""Take a built artifact through the device-management rollout.

    start -> details_loaded -> prior_versions_queried -> groups_resolved
          -> uploaded -> installed -> retired -> done

Any failing step moves the run to ``failed`` and stops it. Completed steps
are not rolled back: an uploaded blob or an installed version stays in place
when a later step fails.

Smart groups are assigned only the first time a bundle is installed. When
earlier versions exist the assignment is already in effect, so the run skips
it and still succeeds.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from mobrel.core.config import MissingConfigError, ReleaseConfig
from mobrel.core.result import Err, Ok, Result
from mobrel.output.console import ConsoleProtocol, Style
from mobrel.services.release.airwatch import DeviceManagementClient
from mobrel.services.release.artifact import read_artifact_details
from mobrel.services.release.errors import ArtifactError, PipelineError, ReleaseStepError
from mobrel.services.release.model import ArtifactDetails, ReleaseOutcome, ReleaseState

type ArtifactReader = Callable[[Path], Result[ArtifactDetails, ArtifactError]]


class ReleaseOrchestrator:
    def __init__(
        self,
        *,
        client: DeviceManagementClient,
        console: ConsoleProtocol,
        read_artifact: ArtifactReader = read_artifact_details,
    ) -> None:
        self._client = client
        self._console = console
        self._read_artifact = read_artifact
        self.state = ReleaseState.START
        self.history: list[ReleaseState] = [ReleaseState.START]

    def _advance(self, state: ReleaseState) -> None:
        self.state = state
        self.history.append(state)

    def _fail(self, step: str, cause: PipelineError) -> Err[ReleaseStepError]:
        error = ReleaseStepError(state=self.state, step=step, cause=cause)
        self._advance(ReleaseState.FAILED)
        return Err(error)

    def run(self, config: ReleaseConfig) -> Result[ReleaseOutcome, ReleaseStepError]:
        if self.state is not ReleaseState.START:
            raise RuntimeError("ReleaseOrchestrator.run may only be called once")

        # Checked before any network call.
        ad_group = config.ad_group
        if ad_group is None:
            return self._fail("check configuration", MissingConfigError(keys=("AD_GROUP",)))

        artifact_path = config.artifact_path or config.workspace_dir
        self._console.info("Getting app details from the build artifact")
        details_result = self._read_artifact(artifact_path)
        if isinstance(details_result, Err):
            return self._fail("read artifact details", details_result.error)
        details = details_result.value
        self._advance(ReleaseState.DETAILS_LOADED)
        self._console.print(
            f"{details.app_name} {details.version} ({details.bundle_id})", Style.DIM
        )

        self._console.info("Getting previous app versions")
        versions = self._client.list_versions(details.bundle_id)
        if isinstance(versions, Err):
            return self._fail("query prior versions", versions.error)
        previous = tuple(versions.value)
        active = tuple(r for r in previous if r.is_active)
        self._advance(ReleaseState.PRIOR_VERSIONS_QUERIED)
        self._console.print(
            f"{len(previous)} previous version(s), {len(active)} active", Style.DIM
        )

        groups = self._client.resolve_policy_group_ids(
            ad_group, details.bundle_id, details.version, previous, active
        )
        if isinstance(groups, Err):
            return self._fail("resolve smart groups", groups.error)
        group_ids = tuple(groups.value)
        self._advance(ReleaseState.GROUPS_RESOLVED)

        self._console.info("Uploading the app")
        blob = self._client.upload_blob(details.path)
        if isinstance(blob, Err):
            return self._fail("upload blob", blob.error)
        self._advance(ReleaseState.UPLOADED)

        self._console.info("Installing the app")
        app = self._client.begin_install(
            blob.value, details.bundle_id, details.version, details.app_name
        )
        if isinstance(app, Err):
            return self._fail("begin install", app.error)
        self._advance(ReleaseState.INSTALLED)

        self._console.info("Retiring previously active versions")
        retired = self._client.retire(list(active))
        if isinstance(retired, Err):
            return self._fail("retire active versions", retired.error)
        self._advance(ReleaseState.RETIRED)

        assigned = False
        if not previous:
            self._console.info("Assigning the smart groups to the newly created app")
            assignment = self._client.assign_policy_groups(app.value, list(group_ids))
            if isinstance(assignment, Err):
                return self._fail("assign smart groups", assignment.error)
            assigned = True
        else:
            self._console.info("Smart groups are already assigned to the app")

        self._advance(ReleaseState.DONE)
        self._console.success(f"{details.app_name} {details.version} released")
        return Ok(
            ReleaseOutcome(
                state=ReleaseState.DONE,
                artifact=details,
                blob_id=blob.value,
                app_id=app.value,
                group_ids=group_ids,
                retired=retired.value,
                assigned=assigned,
                previous=previous,
            )
        )

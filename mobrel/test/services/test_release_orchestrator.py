from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mobrel.core.config import MissingConfigError, ReleaseConfig
from mobrel.core.result import Err, Ok, Result
from mobrel.net.http import TransportError
from mobrel.output.console import MockConsole
from mobrel.services.release.errors import ArtifactError, ReleaseStepError, RemoteError
from mobrel.services.release.model import (
    AppVersionRecord,
    ArtifactDetails,
    ReleaseOutcome,
    ReleaseState,
)
from mobrel.services.release.orchestrator import ReleaseOrchestrator

DETAILS = ArtifactDetails(
    version="1.1",
    bundle_id="com.example.app",
    app_name="Example",
    path=Path("/build/Example.ipa"),
)

CONFIG = ReleaseConfig(ad_group="Mobile Users", artifact_path=Path("/build"))

type ServiceError = RemoteError | TransportError


def _record(app_id: int, status: str = "Active", version: str = "1.0") -> AppVersionRecord:
    return AppVersionRecord(id=app_id, bundle_id="com.example.app", version=version, status=status)


def _read_details(path: Path) -> Result[ArtifactDetails, ArtifactError]:
    assert path == Path("/build")
    return Ok(DETAILS)


@dataclass
class FakeClient:
    previous: list[AppVersionRecord] = field(default_factory=lambda: [])
    group_ids: list[int] = field(default_factory=lambda: [5])
    fail: dict[str, ServiceError] = field(default_factory=lambda: {})
    calls: list[tuple[str, object]] = field(default_factory=lambda: [])

    def list_versions(self, bundle_id: str) -> Result[list[AppVersionRecord], ServiceError]:
        self.calls.append(("list_versions", bundle_id))
        if "list_versions" in self.fail:
            return Err(self.fail["list_versions"])
        return Ok(list(self.previous))

    def upload_blob(self, path: Path) -> Result[int, ServiceError | ArtifactError]:
        self.calls.append(("upload_blob", path))
        if "upload_blob" in self.fail:
            return Err(self.fail["upload_blob"])
        return Ok(4242)

    def begin_install(
        self, blob_id: int, bundle_id: str, version: str, app_name: str
    ) -> Result[int, ServiceError]:
        self.calls.append(("begin_install", (blob_id, bundle_id, version, app_name)))
        if "begin_install" in self.fail:
            return Err(self.fail["begin_install"])
        return Ok(77)

    def retire(
        self, records: Sequence[AppVersionRecord]
    ) -> Result[tuple[AppVersionRecord, ...], ServiceError]:
        self.calls.append(("retire", list(records)))
        if "retire" in self.fail:
            return Err(self.fail["retire"])
        return Ok(tuple(r for r in records if r.is_active))

    def assign_policy_groups(
        self, app_id: int, group_ids: Sequence[int]
    ) -> Result[None, ServiceError]:
        self.calls.append(("assign_policy_groups", (app_id, list(group_ids))))
        if "assign_policy_groups" in self.fail:
            return Err(self.fail["assign_policy_groups"])
        return Ok(None)

    def resolve_policy_group_ids(
        self,
        ad_group: str,
        bundle_id: str,
        version: str,
        previous: Sequence[AppVersionRecord],
        active: Sequence[AppVersionRecord],
    ) -> Result[list[int], ServiceError]:
        self.calls.append(("resolve_policy_group_ids", (ad_group, bundle_id, version)))
        if "resolve_policy_group_ids" in self.fail:
            return Err(self.fail["resolve_policy_group_ids"])
        return Ok(list(self.group_ids))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def args(self, name: str) -> list[object]:
        return [a for n, a in self.calls if n == name]


def _run(
    client: FakeClient, config: ReleaseConfig = CONFIG
) -> tuple[ReleaseOrchestrator, Result[ReleaseOutcome, ReleaseStepError], MockConsole]:
    console = MockConsole()
    orchestrator = ReleaseOrchestrator(client=client, console=console, read_artifact=_read_details)
    return orchestrator, orchestrator.run(config), console


def test_first_install_assigns_groups() -> None:
    client = FakeClient()

    orchestrator, result, console = _run(client)

    assert isinstance(result, Ok)
    assert client.names() == [
        "list_versions",
        "resolve_policy_group_ids",
        "upload_blob",
        "begin_install",
        "retire",
        "assign_policy_groups",
    ]
    assert client.args("retire") == [[]]
    assert client.args("assign_policy_groups") == [(77, [5])]
    assert client.args("begin_install") == [(4242, "com.example.app", "1.1", "Example")]
    assert orchestrator.state is ReleaseState.DONE
    assert orchestrator.history == [
        ReleaseState.START,
        ReleaseState.DETAILS_LOADED,
        ReleaseState.PRIOR_VERSIONS_QUERIED,
        ReleaseState.GROUPS_RESOLVED,
        ReleaseState.UPLOADED,
        ReleaseState.INSTALLED,
        ReleaseState.RETIRED,
        ReleaseState.DONE,
    ]
    assert console.find("Example 1.1 released")


def test_update_retires_active_and_skips_assignment() -> None:
    previous = [_record(1, "Active"), _record(2, "Retired", "0.9")]
    client = FakeClient(previous=previous)

    _, result, _ = _run(client)

    assert isinstance(result, Ok)
    assert client.args("retire") == [[previous[0]]]
    assert client.args("assign_policy_groups") == []
    assert result.value.retired == (previous[0],)
    assert result.value.assigned is False


def test_only_retired_history_still_skips_assignment() -> None:
    client = FakeClient(previous=[_record(2, "Retired")])

    _, result, _ = _run(client)

    assert isinstance(result, Ok)
    assert client.args("retire") == [[]]
    assert client.args("assign_policy_groups") == []


@pytest.mark.parametrize(
    "statuses",
    [[], ["Active"], ["Retired"], ["Active", "Active"], ["Retired", "Active", "Retired"]],
)
def test_assignment_and_retirement_follow_history(statuses: list[str]) -> None:
    previous = [_record(i, s) for i, s in enumerate(statuses, start=1)]
    client = FakeClient(previous=previous)

    _, result, _ = _run(client)

    assert isinstance(result, Ok)
    assert client.args("retire") == [[r for r in previous if r.status == "Active"]]
    assert len(client.args("assign_policy_groups")) == (1 if not previous else 0)


def test_missing_ad_group_fails_before_network() -> None:
    client = FakeClient()

    orchestrator, result, _ = _run(client, ReleaseConfig(artifact_path=Path("/build")))

    assert isinstance(result, Err)
    assert result.error.state is ReleaseState.START
    assert result.error.cause == MissingConfigError(keys=("AD_GROUP",))
    assert client.calls == []
    assert orchestrator.state is ReleaseState.FAILED


def test_artifact_failure() -> None:
    client = FakeClient()
    console = MockConsole()

    def broken(path: Path) -> Result[ArtifactDetails, ArtifactError]:
        del path
        return Err(ArtifactError(message="no .ipa found in /build"))

    orchestrator = ReleaseOrchestrator(client=client, console=console, read_artifact=broken)
    result = orchestrator.run(CONFIG)

    assert isinstance(result, Err)
    assert result.error.step == "read artifact details"
    assert result.error.message == "read artifact details failed: no .ipa found in /build"
    assert client.calls == []


def test_workspace_dir_used_when_no_artifact_path() -> None:
    seen: list[Path] = []

    def reader(path: Path) -> Result[ArtifactDetails, ArtifactError]:
        seen.append(path)
        return Ok(DETAILS)

    orchestrator = ReleaseOrchestrator(
        client=FakeClient(), console=MockConsole(), read_artifact=reader
    )
    orchestrator.run(ReleaseConfig(ad_group="Mobile Users", workspace_dir=Path("/ws")))

    assert seen == [Path("/ws")]


@pytest.mark.parametrize(
    ("failing", "step", "state", "after"),
    [
        ("list_versions", "query prior versions", ReleaseState.DETAILS_LOADED, []),
        (
            "resolve_policy_group_ids",
            "resolve smart groups",
            ReleaseState.PRIOR_VERSIONS_QUERIED,
            ["upload_blob"],
        ),
        ("upload_blob", "upload blob", ReleaseState.GROUPS_RESOLVED, ["begin_install"]),
        ("begin_install", "begin install", ReleaseState.UPLOADED, ["retire"]),
        ("retire", "retire active versions", ReleaseState.INSTALLED, ["assign_policy_groups"]),
        ("assign_policy_groups", "assign smart groups", ReleaseState.RETIRED, []),
    ],
)
def test_failure_stops_the_run(
    failing: str, step: str, state: ReleaseState, after: list[str]
) -> None:
    error = RemoteError(url="https://mdm.example.com/API/x", status=500, text="boom")
    client = FakeClient(fail={failing: error})

    orchestrator, result, _ = _run(client)

    assert isinstance(result, Err)
    assert result.error.step == step
    assert result.error.state is state
    assert result.error.cause == error
    assert orchestrator.state is ReleaseState.FAILED
    assert orchestrator.history[-1] is ReleaseState.FAILED
    for name in after:
        assert name not in client.names()


def test_transport_error_is_reported() -> None:
    client = FakeClient(
        fail={"upload_blob": TransportError(url="https://x", method="POST", reason="reset")}
    )

    _, result, _ = _run(client)

    assert isinstance(result, Err)
    assert isinstance(result.error.cause, TransportError)


def test_run_twice_is_rejected() -> None:
    orchestrator, result, _ = _run(FakeClient())
    assert isinstance(result, Ok)

    with pytest.raises(RuntimeError):
        orchestrator.run(CONFIG)


def test_single_active_record_scenario() -> None:
    active = _record(11, "Active")
    client = FakeClient(previous=[active])

    _, result, _ = _run(client)

    assert isinstance(result, Ok)
    assert "upload_blob" in client.names()
    assert "begin_install" in client.names()
    assert client.args("retire") == [[active]]
    assert client.args("assign_policy_groups") == []
    assert result.value.retired == (active,)

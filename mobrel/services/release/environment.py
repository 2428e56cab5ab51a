"""Branch name -> environment class.

The mapping is an ordered rule table evaluated top-to-bottom; the first
matching rule wins. Production rules sit above qa rules, so ``release/*``
and ``hotfix/*`` always resolve to production.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from urllib.parse import quote

from mobrel.core.config import strip_branch_ref
from mobrel.services.release.model import EnvironmentClass


@dataclass(frozen=True, slots=True)
class BranchRule:
    match: Literal["exact", "prefix"]
    pattern: str
    environment: EnvironmentClass

    def matches(self, name: str) -> bool:
        if self.match == "exact":
            return name == self.pattern
        return name.startswith(self.pattern)


BRANCH_RULES: tuple[BranchRule, ...] = (
    BranchRule("exact", "master", EnvironmentClass.PRODUCTION),
    BranchRule("exact", "main", EnvironmentClass.PRODUCTION),
    BranchRule("prefix", "release/", EnvironmentClass.PRODUCTION),
    BranchRule("prefix", "hotfix/", EnvironmentClass.PRODUCTION),
    BranchRule("exact", "staging", EnvironmentClass.QA),
    BranchRule("prefix", "staging/", EnvironmentClass.QA),
    BranchRule("prefix", "qa/", EnvironmentClass.QA),
    BranchRule("exact", "develop", EnvironmentClass.DEVELOPMENT),
    BranchRule("prefix", "feature/", EnvironmentClass.DEVELOPMENT),
)


@dataclass(frozen=True, slots=True)
class BranchRef:
    """A version-control branch name (without ``refs/heads/``)."""

    name: str

    @classmethod
    def from_ref(cls, ref: str) -> BranchRef:
        return cls(strip_branch_ref(ref.strip()))

    @property
    def environment(self) -> EnvironmentClass:
        return resolve_environment(self)

    @property
    def url_encoded(self) -> str:
        """Path-segment form: ``/`` and every other reserved character escaped."""
        return quote(self.name, safe="")

    def __str__(self) -> str:
        return self.name


def resolve_environment(
    branch: BranchRef | str,
    rules: tuple[BranchRule, ...] = BRANCH_RULES,
) -> EnvironmentClass:
    name = branch.name if isinstance(branch, BranchRef) else branch
    for rule in rules:
        if rule.matches(name):
            return rule.environment
    return EnvironmentClass.UNKNOWN

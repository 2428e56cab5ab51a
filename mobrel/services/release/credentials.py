"""Pick the signing files for an environment out of directory listings.

Certificates: exactly one ``.p12`` (encrypted private key) and exactly one
``.cer`` (encrypted DER certificate). Profiles: exactly one
``.mobileprovision`` whose name ends with the environment suffix derived from
the Xcode scheme. Both the dot and the hyphen infix are accepted for qa and
development profiles since both spellings exist in credential repositories.

Ambiguity is an error rather than first-match-wins, so the result never
depends on directory listing order.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePath

from mobrel.core.result import Err, Ok, Result
from mobrel.services.release.errors import CredentialKind, CredentialNotFoundError
from mobrel.services.release.model import CredentialArtifactSet, EnvironmentClass

PROFILE_EXTENSION = ".mobileprovision"

_PROFILE_INFIXES: dict[EnvironmentClass, tuple[str, ...]] = {
    EnvironmentClass.PRODUCTION: ("",),
    EnvironmentClass.QA: (".qa", "-qa"),
    EnvironmentClass.DEVELOPMENT: (".dev", "-dev"),
    EnvironmentClass.UNKNOWN: (),
}


def profile_suffixes(env: EnvironmentClass, scheme_name: str) -> tuple[str, ...]:
    """Filename suffixes accepted for ``env`` (empty for unknown)."""
    return tuple(f"{scheme_name}{infix}{PROFILE_EXTENSION}" for infix in _PROFILE_INFIXES[env])


def _sole(
    candidates: list[str],
    *,
    kind: CredentialKind,
    what: str,
) -> Result[str, CredentialNotFoundError]:
    if len(candidates) == 1:
        return Ok(candidates[0])
    if not candidates:
        return Err(CredentialNotFoundError(kind=kind, message=f"no {what} found"))
    return Err(
        CredentialNotFoundError(
            kind=kind,
            message=f"ambiguous {what}: {len(candidates)} candidates",
            candidates=tuple(candidates),
        )
    )


def select_credentials(
    env: EnvironmentClass,
    cert_listing: Iterable[str],
    profile_listing: Iterable[str],
    *,
    scheme_name: str,
) -> Result[CredentialArtifactSet, CredentialNotFoundError]:
    certs = sorted(PurePath(name).name for name in cert_listing)
    profiles = sorted(PurePath(name).name for name in profile_listing)

    p12 = _sole(
        [n for n in certs if PurePath(n).suffix == ".p12"],
        kind="certificate",
        what="certificate (.p12)",
    )
    if isinstance(p12, Err):
        return p12

    cer = _sole(
        [n for n in certs if PurePath(n).suffix == ".cer"],
        kind="public_certificate",
        what="public certificate (.cer)",
    )
    if isinstance(cer, Err):
        return cer

    suffixes = profile_suffixes(env, scheme_name)
    profile = _sole(
        [n for n in profiles if any(n.endswith(s) for s in suffixes)],
        kind="provisioning_profile",
        what=f"{env} provisioning profile for scheme {scheme_name!r}",
    )
    if isinstance(profile, Err):
        return profile

    return Ok(
        CredentialArtifactSet(
            certificate_file=p12.value,
            public_cert_file=cer.value,
            provisioning_profile_file=profile.value,
        )
    )

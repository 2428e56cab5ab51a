"""Signing credential provisioning.

Clones the credential repository, selects the files for the branch's
environment and decrypts them into plaintext working files:

    key.pem                    <- certs/<type>/*.p12 (decrypted)
    cert.der -> cert.pem       <- certs/<type>/*.cer (decrypted, DER -> PEM)
    cert.p12                   <- key.pem + cert.pem re-exported
    <app>.mobileprovision      <- profiles/<type>/*<scheme suffix> (decrypted)

The run is all-or-nothing: the first failing step ends it. git and openssl
are reached through ``CredentialTools`` so tests can substitute a fake.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from mobrel.core.config import PROVISIONING_FIELDS, MissingConfigError, ReleaseConfig
from mobrel.core.result import Err, Ok, Result
from mobrel.output.console import ConsoleProtocol, Style
from mobrel.platform.process import run as run_process
from mobrel.services.release.credentials import select_credentials
from mobrel.services.release.errors import (
    CredentialNotFoundError,
    ProvisioningError,
    ProvisioningStep,
)
from mobrel.services.release.model import (
    DecryptedCredentialPaths,
    EnvironmentClass,
    SigningMaterial,
)
from mobrel.services.release.timeouts import GIT_CLONE_TIMEOUT_SECONDS, OPENSSL_TIMEOUT_SECONDS

_PASSPHRASE_ENV = "MOBREL_SIGNING_PASSPHRASE"

REPO_DIR_NAME = "credentials"
PRIVATE_KEY_NAME = "key.pem"
CERT_DER_NAME = "cert.der"
CERT_PEM_NAME = "cert.pem"
PKCS12_NAME = "cert.p12"

type ProvisionError = ProvisioningError | CredentialNotFoundError | MissingConfigError


class CredentialTools(Protocol):
    """External capabilities used while provisioning."""

    def fetch_credential_repository(
        self, url: str, token: str, dest: Path
    ) -> Result[Path, ProvisioningError]: ...

    def list_directory(self, path: Path) -> Result[list[str], ProvisioningError]: ...

    def decrypt_artifact(
        self, src: Path, dest: Path, passphrase: str
    ) -> Result[Path, ProvisioningError]: ...

    def convert_certificate(self, der: Path, pem: Path) -> Result[Path, ProvisioningError]: ...

    def export_pkcs12(
        self, key: Path, cert: Path, dest: Path, passphrase: str
    ) -> Result[Path, ProvisioningError]: ...


def credential_repo_clone_url(url: str, token: str) -> str:
    """``owner/repo`` or ``https://host/owner/repo`` -> authenticated https URL.

    The token is percent-encoded so reserved characters stay in the userinfo.
    """
    userinfo = quote(token, safe="")
    if url.startswith("https://"):
        return f"https://{userinfo}@{url[len('https://') :]}"
    return f"https://{userinfo}@github.com/{url.lstrip('/')}"


def _redact(text: str, secret: str) -> str:
    if not secret:
        return text
    # git echoes the encoded URL back.
    return text.replace(quote(secret, safe=""), "***").replace(secret, "***")


class OpenSslCredentialTools:
    """git + openssl implementation of ``CredentialTools``.

    Passphrases travel through the child environment (``-pass env:``), never
    through argv.
    """

    def __init__(
        self,
        *,
        clone_timeout: float = GIT_CLONE_TIMEOUT_SECONDS,
        openssl_timeout: float = OPENSSL_TIMEOUT_SECONDS,
    ) -> None:
        self._clone_timeout = clone_timeout
        self._openssl_timeout = openssl_timeout

    def fetch_credential_repository(
        self, url: str, token: str, dest: Path
    ) -> Result[Path, ProvisioningError]:
        dest.parent.mkdir(parents=True, exist_ok=True)
        cmd = ["git", "clone", "--depth", "1", credential_repo_clone_url(url, token), str(dest)]
        result = run_process(cmd, cwd=dest.parent, timeout=self._clone_timeout)
        if isinstance(result, Err):
            return Err(
                ProvisioningError(
                    step="fetch",
                    message=f"failed to clone credential repository: {url}",
                    hint=_redact(result.error.stderr.strip(), token) or None,
                )
            )
        return Ok(dest)

    def list_directory(self, path: Path) -> Result[list[str], ProvisioningError]:
        try:
            return Ok(sorted(p.name for p in path.iterdir() if p.is_file()))
        except OSError as e:
            return Err(
                ProvisioningError(
                    step="list",
                    message=f"cannot list {path}",
                    hint=str(e),
                )
            )

    def _openssl(
        self,
        args: list[str],
        *,
        cwd: Path,
        step: ProvisioningStep,
        what: str,
        passphrase: str | None = None,
    ) -> Result[None, ProvisioningError]:
        extra_env = {_PASSPHRASE_ENV: passphrase} if passphrase is not None else None
        result = run_process(
            ["openssl", *args],
            cwd=cwd,
            extra_env=extra_env,
            timeout=self._openssl_timeout,
        )
        if isinstance(result, Err):
            return Err(
                ProvisioningError(
                    step=step,
                    message=f"openssl failed to {what}",
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(None)

    def decrypt_artifact(
        self, src: Path, dest: Path, passphrase: str
    ) -> Result[Path, ProvisioningError]:
        result = self._openssl(
            [
                "aes-256-cbc",
                "-d",
                "-a",
                "-md",
                "md5",
                "-pass",
                f"env:{_PASSPHRASE_ENV}",
                "-in",
                str(src),
                "-out",
                str(dest),
            ],
            cwd=dest.parent,
            step="decrypt",
            what=f"decrypt {src.name} (wrong passphrase or corrupt artifact?)",
            passphrase=passphrase,
        )
        return result.map(lambda _: dest)

    def convert_certificate(self, der: Path, pem: Path) -> Result[Path, ProvisioningError]:
        result = self._openssl(
            ["x509", "-inform", "der", "-in", str(der), "-out", str(pem)],
            cwd=pem.parent,
            step="convert",
            what=f"convert {der.name} to PEM",
        )
        return result.map(lambda _: pem)

    def export_pkcs12(
        self, key: Path, cert: Path, dest: Path, passphrase: str
    ) -> Result[Path, ProvisioningError]:
        result = self._openssl(
            [
                "pkcs12",
                "-export",
                "-inkey",
                str(key),
                "-in",
                str(cert),
                "-out",
                str(dest),
                "-passout",
                f"env:{_PASSPHRASE_ENV}",
            ],
            cwd=dest.parent,
            step="export",
            what="export the PKCS#12 bundle",
            passphrase=passphrase,
        )
        return result.map(lambda _: dest)


@dataclass(frozen=True, slots=True)
class _Inputs:
    scheme_name: str
    passphrase: str
    repo_url: str
    repo_token: str
    app_name: str


class CredentialProvisioner:
    def __init__(
        self,
        *,
        tools: CredentialTools,
        config: ReleaseConfig,
        work_dir: Path,
        console: ConsoleProtocol,
    ) -> None:
        self._tools = tools
        self._config = config
        self._work_dir = work_dir
        self._console = console

    def _inputs(self) -> Result[_Inputs, MissingConfigError]:
        required = self._config.require(PROVISIONING_FIELDS)
        if isinstance(required, Err):
            return required
        c = self._config
        assert c.scheme_name and c.signing_passphrase and c.credential_repo_url
        assert c.credential_repo_token and c.app_name
        return Ok(
            _Inputs(
                scheme_name=c.scheme_name,
                passphrase=c.signing_passphrase,
                repo_url=c.credential_repo_url,
                repo_token=c.credential_repo_token,
                app_name=c.app_name,
            )
        )

    def provision(self, env: EnvironmentClass) -> Result[DecryptedCredentialPaths, ProvisionError]:
        inputs_result = self._inputs()
        if isinstance(inputs_result, Err):
            return inputs_result
        inputs = inputs_result.value

        if env is EnvironmentClass.UNKNOWN:
            return Err(
                CredentialNotFoundError(
                    kind="provisioning_profile",
                    message="branch does not map to an environment; no profile to select",
                )
            )

        self._work_dir.mkdir(parents=True, exist_ok=True)
        self._console.info(f"Fetching credential repository {inputs.repo_url}")
        fetched = self._tools.fetch_credential_repository(
            inputs.repo_url, inputs.repo_token, self._work_dir / REPO_DIR_NAME
        )
        if isinstance(fetched, Err):
            return fetched
        repo_dir = fetched.value

        profile_type = self._config.profile_type
        cert_dir = repo_dir / "certs" / profile_type
        profile_dir = repo_dir / "profiles" / profile_type

        certs = self._tools.list_directory(cert_dir)
        if isinstance(certs, Err):
            return certs
        profiles = self._tools.list_directory(profile_dir)
        if isinstance(profiles, Err):
            return profiles

        selected = select_credentials(
            env, certs.value, profiles.value, scheme_name=inputs.scheme_name
        )
        if isinstance(selected, Err):
            return selected
        selection = selected.value
        self._console.print(
            f"{env}: {selection.certificate_file}, {selection.public_cert_file}, "
            f"{selection.provisioning_profile_file}",
            Style.DIM,
        )

        out = self._work_dir
        key = self._tools.decrypt_artifact(
            cert_dir / selection.certificate_file, out / PRIVATE_KEY_NAME, inputs.passphrase
        )
        if isinstance(key, Err):
            return key

        der = self._tools.decrypt_artifact(
            cert_dir / selection.public_cert_file, out / CERT_DER_NAME, inputs.passphrase
        )
        if isinstance(der, Err):
            return der

        pem = self._tools.convert_certificate(der.value, out / CERT_PEM_NAME)
        if isinstance(pem, Err):
            return pem

        bundle = self._tools.export_pkcs12(
            key.value, pem.value, out / PKCS12_NAME, inputs.passphrase
        )
        if isinstance(bundle, Err):
            return bundle

        profile = self._tools.decrypt_artifact(
            profile_dir / selection.provisioning_profile_file,
            out / f"{inputs.app_name}.mobileprovision",
            inputs.passphrase,
        )
        if isinstance(profile, Err):
            return profile

        self._console.success("Signing credentials decrypted")
        return Ok(
            DecryptedCredentialPaths(
                private_key=key.value,
                certificate=pem.value,
                pkcs12_bundle=bundle.value,
                provisioning_profile=profile.value,
                selection=selection,
            )
        )


def read_signing_material(
    paths: DecryptedCredentialPaths,
) -> Result[SigningMaterial, ProvisioningError]:
    """Base64-encode the PKCS#12 bundle and profile for the build service."""
    try:
        cert = paths.pkcs12_bundle.read_bytes()
        profile = paths.provisioning_profile.read_bytes()
    except OSError as e:
        return Err(
            ProvisioningError(step="read", message="cannot read decrypted credentials", hint=str(e))
        )
    return Ok(
        SigningMaterial(
            certificate_encoded=base64.b64encode(cert).decode("ascii"),
            certificate_filename=paths.pkcs12_bundle.name,
            profile_encoded=base64.b64encode(profile).decode("ascii"),
            profile_filename=paths.provisioning_profile.name,
        )
    )

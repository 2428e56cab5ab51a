"""Read version, bundle id and display name out of a built .ipa."""

from __future__ import annotations

import plistlib
import re
import zipfile
from pathlib import Path

from mobrel.core.result import Err, Ok, Result
from mobrel.core.structured import as_str_dict, get_str
from mobrel.services.release.errors import ArtifactError
from mobrel.services.release.model import ArtifactDetails

_INFO_PLIST = re.compile(r"^Payload/[^/]+\.app/Info\.plist$")


def find_ipa(path: Path) -> Result[Path, ArtifactError]:
    """``path`` itself when it is a file, else the only .ipa inside it."""
    if path.is_file():
        return Ok(path)
    if not path.is_dir():
        return Err(ArtifactError(message=f"build artifact not found: {path}"))

    candidates = sorted(p for p in path.iterdir() if p.is_file() and p.suffix == ".ipa")
    if len(candidates) == 1:
        return Ok(candidates[0])
    if not candidates:
        return Err(
            ArtifactError(
                message=f"no .ipa found in {path}",
                hint="Set IPA_PATH to the built artifact",
            )
        )
    return Err(
        ArtifactError(
            message=f"several .ipa files in {path}",
            hint=", ".join(p.name for p in candidates),
        )
    )


def read_artifact_details(path: Path) -> Result[ArtifactDetails, ArtifactError]:
    found = find_ipa(path)
    if isinstance(found, Err):
        return found
    ipa = found.value

    try:
        with zipfile.ZipFile(ipa) as archive:
            names = [n for n in archive.namelist() if _INFO_PLIST.match(n)]
            if not names:
                return Err(ArtifactError(message=f"no Info.plist in {ipa.name}"))
            raw = archive.read(names[0])
    except (OSError, zipfile.BadZipFile) as e:
        return Err(ArtifactError(message=f"cannot open {ipa.name}", hint=str(e)))

    try:
        info = as_str_dict(plistlib.loads(raw))
    except (plistlib.InvalidFileException, ValueError) as e:
        return Err(ArtifactError(message=f"invalid Info.plist in {ipa.name}", hint=str(e)))
    if info is None:
        return Err(ArtifactError(message=f"invalid Info.plist in {ipa.name}"))

    version = get_str(info, "CFBundleShortVersionString")
    bundle_id = get_str(info, "CFBundleIdentifier")
    app_name = get_str(info, "CFBundleDisplayName") or get_str(info, "CFBundleName")
    missing = [
        key
        for key, value in (
            ("CFBundleShortVersionString", version),
            ("CFBundleIdentifier", bundle_id),
            ("CFBundleName", app_name),
        )
        if value is None
    ]
    if missing or version is None or bundle_id is None or app_name is None:
        return Err(
            ArtifactError(
                message=f"Info.plist in {ipa.name} lacks {', '.join(missing)}",
            )
        )

    return Ok(ArtifactDetails(version=version, bundle_id=bundle_id, app_name=app_name, path=ipa))

from __future__ import annotations

# Credential repository clone (network-bound)
GIT_CLONE_TIMEOUT_SECONDS = 5 * 60.0

# Local openssl decrypt/convert/export
OPENSSL_TIMEOUT_SECONDS = 60.0

# Build service config calls
APPCENTER_TIMEOUT_SECONDS = 60.0

# Device-management calls; blob upload carries the whole .ipa
AIRWATCH_TIMEOUT_SECONDS = 2 * 60.0
AIRWATCH_UPLOAD_TIMEOUT_SECONDS = 20 * 60.0

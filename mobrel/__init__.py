"""Mobile release automation: branch build config, signing credentials, MDM rollout."""

__version__ = "0.3.0"

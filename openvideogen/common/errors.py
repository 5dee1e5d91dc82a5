"""Error taxonomy shared by storage, providers and the pipeline."""

from __future__ import annotations


class OpenVideoGenError(Exception):
    """Base exception for all OpenVideoGen errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.recoverable = recoverable


class ProviderError(OpenVideoGenError):
    """A generation collaborator failed or returned unusable output."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        code: str = "provider_error",
        status_code: int | None = None,
    ):
        super().__init__(message, recoverable=True)
        self.provider = provider
        self.code = code
        self.status_code = status_code

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"[{self.provider}:{self.code}:{self.status_code}] {base}"
        return f"[{self.provider}:{self.code}] {base}"


class ApiKeyMissingError(ProviderError):
    """No configured or user-supplied key is available for a provider."""

    def __init__(self, provider: str):
        super().__init__(
            f"API key required for provider '{provider}'",
            provider=provider,
            code="api_key_missing",
        )


class StorageError(OpenVideoGenError):
    """The local persistence layer rejected an operation."""


class StorageWriteError(StorageError):
    """A write, delete or clear could not be completed."""


class StorageReadError(StorageError):
    """A read failed or persisted data could not be decoded."""


class StorageNotReadyError(StorageError):
    """The store was used before init() or after close()."""

    def __init__(self, message: str = "Asset store is not initialized"):
        super().__init__(message, recoverable=False)


class AssetNotFoundError(StorageReadError):
    """An asset the pipeline depends on is no longer in the store."""

    def __init__(self, asset_id: str):
        super().__init__(f"Asset not found in storage: {asset_id}")
        self.asset_id = asset_id


class PrerequisiteMissingError(OpenVideoGenError):
    """A stage was triggered without its upstream inputs."""

    def __init__(self, stage: str, missing: list[str]):
        super().__init__(
            f"Cannot run {stage} stage, missing: {', '.join(missing)}"
        )
        self.stage = stage
        self.missing = missing


class PipelineBusyError(OpenVideoGenError):
    """A stage was triggered while another one is still running."""

    def __init__(self, requested: str, in_flight: str):
        super().__init__(
            f"Cannot start {requested} stage while {in_flight} is generating"
        )
        self.requested = requested
        self.in_flight = in_flight


class InvalidAssetError(OpenVideoGenError, ValueError):
    """An asset id, type or upload payload is not acceptable."""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)

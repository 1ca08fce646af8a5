"""Domain exceptions raised by services and translated to HTTP errors by routers."""


class MediSafeError(Exception):
    """Base class for expected, domain-level failures."""


class ShareLinkNotFound(MediSafeError):
    pass


class SharePermissionError(MediSafeError):
    pass


class DocumentNotFound(MediSafeError):
    pass


class ReadOnlyDataSource(MediSafeError):
    """Write attempted against fixture-backed (demo) data."""


class UnsupportedMediaType(MediSafeError):
    pass


class OcrError(MediSafeError):
    """Text recognition failed; nothing to hand to the AI services."""


class AIServiceError(MediSafeError):
    """The LLM call failed or returned something unusable."""


class StorageError(MediSafeError):
    """The object store rejected an upload or delete."""

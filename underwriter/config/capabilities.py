from dataclasses import dataclass

from underwriter.config.settings import Settings


@dataclass(frozen=True)
class StoreCapabilities:
    """Optional job-table columns available in the deployed schema.

    Resolved once at start-up from the configured schema version and passed to
    the repositories, which never inspect the schema per request.
    """

    schema_version: int
    has_error_code: bool
    has_lifecycle_timestamps: bool

    @classmethod
    def for_version(cls, version: int) -> "StoreCapabilities":
        if version < 1:
            raise ValueError(f"Unknown store schema version {version}")
        if version == 1:
            return cls(schema_version=1, has_error_code=False, has_lifecycle_timestamps=False)
        return cls(schema_version=version, has_error_code=True, has_lifecycle_timestamps=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreCapabilities":
        return cls.for_version(settings.store_schema_version)


FULL_SCHEMA = StoreCapabilities.for_version(2)

"""Migration 1.1.0-alpha: company schema fields and review processing marks."""

from datetime import datetime, timezone

from ..logger import MigrationLogger
from ..primitives import add_field, transform_entries
from ..semver import SemanticVersion
from ..store import REVIEW_CACHE_PATTERN, KeyValueStore, StorageKeys
from .base import MigrationProcedure


class Migration110CompanyFields(MigrationProcedure):
    """
    Add ``industry`` and ``lastUpdated`` to companies and mark cached reviews.

    Companies gain industry="Unknown" and a lastUpdated timestamp where they
    lack them. Every cached review gets ``migrated`` and
    ``processingVersion`` so later releases can tell which pages were rewritten.
    """

    affects = (StorageKeys.COMPANIES, REVIEW_CACHE_PATTERN.pattern)

    def migrate(
        self,
        store: KeyValueStore,
        from_version: SemanticVersion,
        to_version: SemanticVersion,
        logger: MigrationLogger,
    ) -> dict[str, int]:
        logger.info(f"Starting migration from {from_version} to {to_version}")

        industry = add_field(store, StorageKeys.COMPANIES, "industry", "Unknown", logger)
        timestamps = add_field(
            store,
            StorageKeys.COMPANIES,
            "lastUpdated",
            datetime.now(timezone.utc).isoformat(),
            logger,
        )
        logger.success(f"Updated {timestamps.updated} companies with new fields")

        reviews = transform_entries(
            store,
            REVIEW_CACHE_PATTERN,
            lambda review: {
                **review,
                "migrated": True,
                "processingVersion": str(to_version),
            },
            logger,
        )

        return {
            "companiesUpdated": max(industry.updated, timestamps.updated),
            "reviewsUpdated": reviews.updated,
            "reviewsFailed": reviews.failed,
        }

    def description(self) -> str:
        return "Add industry and lastUpdated to companies, mark cached reviews"

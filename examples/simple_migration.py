#!/usr/bin/env python3
"""Simple Strapi Migration Example

Copies content between two Strapi v5 instances through the portable format,
following relations so the target receives everything the exported entries
point at.

Usage:
    1. Update SOURCE_URL, SOURCE_TOKEN, TARGET_URL, TARGET_TOKEN below
    2. Update CONTENT_TYPES with your content types
    3. Run: python simple_migration.py

Environment Variables (optional):
    SOURCE_STRAPI_URL: Override SOURCE_URL
    SOURCE_STRAPI_TOKEN: Override SOURCE_TOKEN
    TARGET_STRAPI_URL: Override TARGET_URL
    TARGET_STRAPI_TOKEN: Override TARGET_TOKEN
"""

import logging
import os
from datetime import datetime

from pydantic import SecretStr

from strapi_transfer import (
    ExistingAction,
    ExportOptions,
    ImportOptions,
    StrapiConfig,
    StrapiExporter,
    StrapiImporter,
    SyncClient,
)
from strapi_transfer.exceptions import StrapiError

# ============================================================================
# CONFIGURATION - Update these values or use environment variables
# ============================================================================

SOURCE_URL = os.getenv("SOURCE_STRAPI_URL", "http://localhost:1337")
SOURCE_TOKEN = os.getenv("SOURCE_STRAPI_TOKEN", "your-source-api-token-here")

TARGET_URL = os.getenv("TARGET_STRAPI_URL", "http://localhost:1338")
TARGET_TOKEN = os.getenv("TARGET_STRAPI_TOKEN", "your-target-api-token-here")

# List your content types here, or use ["custom:db"] for every API content type
CONTENT_TYPES = [
    "api::article.article",
    "api::author.author",
    "api::category.category",
]

# ============================================================================


def validate_config() -> None:
    """Validate configuration before migration.

    Raises:
        ValueError: If required configuration is missing or invalid.
    """
    if not SOURCE_TOKEN or SOURCE_TOKEN == "your-source-api-token-here":
        raise ValueError(
            "SOURCE_TOKEN not configured. "
            "Set SOURCE_STRAPI_TOKEN environment variable or update SOURCE_TOKEN in the script."
        )
    if not TARGET_TOKEN or TARGET_TOKEN == "your-target-api-token-here":
        raise ValueError(
            "TARGET_TOKEN not configured. "
            "Set TARGET_STRAPI_TOKEN environment variable or update TARGET_TOKEN in the script."
        )
    if not SOURCE_URL:
        raise ValueError("SOURCE_URL cannot be empty.")
    if not TARGET_URL:
        raise ValueError("TARGET_URL cannot be empty.")


def main() -> None:
    """Perform a simple migration from source to target."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    print("Starting Strapi Migration")
    print("=" * 60)

    try:
        validate_config()
    except ValueError as e:
        print(f"Configuration error: {e}")
        return

    run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_file = f"migration_backup_{run_id}.json"

    source_config = StrapiConfig(base_url=SOURCE_URL, api_token=SecretStr(SOURCE_TOKEN))
    target_config = StrapiConfig(base_url=TARGET_URL, api_token=SecretStr(TARGET_TOKEN))

    # Step 1: Export from source
    print(f"\nExporting from {SOURCE_URL}...")
    try:
        with SyncClient(source_config) as source_client:
            exporter = StrapiExporter.for_client(source_client)
            document = exporter.export(
                CONTENT_TYPES,
                ExportOptions(export_relations=True, deep_populate_relations=True),
            )
    except StrapiError as e:
        print(f"Export failed: {e}")
        return

    exporter.save_to_file(document, backup_file)
    print(f"  Exported {document.entry_count()} entries")
    print(f"  Saved backup to {backup_file}")

    # Step 2: Import to target
    print(f"\nImporting to {TARGET_URL}...")
    try:
        with SyncClient(target_config) as target_client:
            importer = StrapiImporter.for_client(target_client)
            result = importer.import_data(
                document,
                ImportOptions(
                    existing_action=ExistingAction.UPDATE,
                    allow_locale_updates=True,
                ),
            )
    except StrapiError as e:
        print(f"Import failed: {e}")
        print(f"Export data saved to {backup_file} - you can retry import later.")
        return

    if result.blocked:
        print("  Validation failed, nothing was written:")
        for error in result.errors:
            print(f"    {error.data.path}: {error.error}")
        return

    print(f"  Created {result.created}, updated {result.updated}, skipped {result.skipped}")
    for failure in result.failures:
        print(f"  Failed: {failure.error}")

    print("\nMigration complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()

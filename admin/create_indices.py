#!/usr/bin/env python3
"""
Create the businesses index for the Business Discovery Engine.

Reads mapping definitions from the mappings/ directory and creates the
index with the geo_point location, nested opening hours and keyword
subfields the discovery queries rely on.
"""

import json
import sys
from pathlib import Path

# Allow running as script or module
if __name__ == "__main__" and __package__ is None:
    sys.path.insert(0, str(Path(__file__).parent.parent))

import click

from admin.utils.cli import (
    common_options,
    elasticsearch_options,
    env_option,
    load_config_file,
    echo_success,
    echo_error,
    echo_info,
    echo_warning,
    echo_verbose,
    confirm_action,
)
from admin.utils.elasticsearch import get_es_client


PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_MAPPINGS_DIR = PROJECT_ROOT / "mappings"
DEFAULT_CONFIG = PROJECT_ROOT / "config" / "config.yaml"


def load_mapping(mapping_path: Path) -> dict:
    """
    Load a mapping definition from a JSON file.

    Returns:
        dict: The definition, with "settings" and "mappings" keys
    """
    with open(mapping_path, "r") as f:
        return json.load(f)


def resolve_index_name(mapping_path: Path, config_data: dict) -> str:
    """
    Index name for a mapping file.

    The file stem (mappings/businesses.json -> "businesses") is the logical
    name; config/config.yaml ``indices`` may map it to a different index.
    """
    logical_name = mapping_path.stem
    return config_data.get("indices", {}).get(logical_name, logical_name)


def create_index(
    es,
    index_name: str,
    mapping: dict,
    dry_run: bool = False,
    verbose: bool = False
) -> bool:
    """
    Create an Elasticsearch index with the given mapping.

    Returns:
        bool: True if successful, False otherwise
    """
    try:
        if dry_run:
            echo_info(f"[DRY RUN] Would create index: {index_name}")
            echo_verbose(f"Mapping: {json.dumps(mapping, indent=2)}", verbose)
            return True

        es.indices.create(
            index=index_name,
            settings=mapping.get("settings", {}),
            mappings=mapping.get("mappings", {})
        )

        echo_success(f"Created index: {index_name}")
        return True

    except Exception as e:
        echo_error(f"Failed to create index {index_name}: {e}")
        return False


def delete_index(es, index_name: str, dry_run: bool = False) -> bool:
    """Delete an Elasticsearch index."""
    try:
        if dry_run:
            echo_info(f"[DRY RUN] Would delete index: {index_name}")
            return True

        es.indices.delete(index=index_name)
        echo_success(f"Deleted index: {index_name}")
        return True

    except Exception as e:
        echo_error(f"Failed to delete index {index_name}: {e}")
        return False


@click.command()
@click.option(
    "--mappings-dir", "-m",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=DEFAULT_MAPPINGS_DIR,
    help="Directory containing mapping JSON files."
)
@click.option(
    "--delete-existing",
    is_flag=True,
    default=False,
    help="Delete existing indices before creating new ones."
)
@click.option(
    "--force", "-f",
    is_flag=True,
    default=False,
    help="Skip confirmation prompts."
)
@common_options
@elasticsearch_options
@env_option
def main(
    mappings_dir: Path,
    delete_existing: bool,
    force: bool,
    dry_run: bool,
    verbose: bool,
    config: str
):
    """
    Create Elasticsearch indices from mapping definitions.

    Examples:

        # Create the businesses index
        python -m admin.create_indices

        # Recreate it from scratch
        python -m admin.create_indices --delete-existing --force

        # Preview what would be created
        python -m admin.create_indices --dry-run -v
    """
    config_data = {}
    config_path = Path(config) if config else DEFAULT_CONFIG
    if config_path.exists():
        config_data = load_config_file(str(config_path))
        echo_verbose(f"Loaded config from {config_path}", verbose)

    mapping_files = sorted(mappings_dir.glob("*.json"))
    if not mapping_files:
        echo_error(f"No mapping files found in {mappings_dir}")
        raise SystemExit(1)

    echo_info(f"Found {len(mapping_files)} mapping file(s)")

    try:
        es = get_es_client()
        es.info()
        echo_verbose("Connected to Elasticsearch", verbose)
    except Exception as e:
        echo_error(f"Failed to connect to Elasticsearch: {e}")
        raise SystemExit(1)

    targets = [(resolve_index_name(f, config_data), f) for f in mapping_files]
    existing_indices = [name for name, _ in targets if es.indices.exists(index=name)]

    if existing_indices and not delete_existing:
        echo_warning(f"The following indices already exist: {', '.join(existing_indices)}")
        echo_info("Use --delete-existing to recreate them, or they will be skipped.")

    if delete_existing and existing_indices:
        if not dry_run and not force:
            if not confirm_action(
                f"Delete {len(existing_indices)} existing indices? This cannot be undone.",
                default=False,
                abort=False
            ):
                echo_info("Aborted.")
                raise SystemExit(0)

        for index_name in existing_indices:
            delete_index(es, index_name, dry_run=dry_run)

    success_count = 0
    skip_count = 0
    fail_count = 0

    for index_name, mapping_file in targets:
        if index_name in existing_indices and not delete_existing:
            echo_info(f"Skipping existing index: {index_name}")
            skip_count += 1
            continue

        try:
            mapping = load_mapping(mapping_file)
            echo_verbose(f"Loaded mapping from {mapping_file}", verbose)
        except (OSError, json.JSONDecodeError) as e:
            echo_error(f"Failed to load mapping from {mapping_file}: {e}")
            fail_count += 1
            continue

        if create_index(es, index_name, mapping, dry_run=dry_run, verbose=verbose):
            success_count += 1
        else:
            fail_count += 1

    echo_info(f"\nSummary: {success_count} created, {skip_count} skipped, {fail_count} failed")

    if fail_count > 0:
        raise SystemExit(1)


if __name__ == "__main__":
    main()

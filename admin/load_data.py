#!/usr/bin/env python3
"""
Bulk load business records into Elasticsearch.

Reads an NDJSON file (one business per line, as written by
``admin.generate_sample_data``) and indexes it with the bulk API, using each
record's ``id`` as the document id.
"""

import json
from pathlib import Path
from typing import Iterator, Optional

import click
from tqdm import tqdm

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
)
from admin.utils.elasticsearch import get_es_client


PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG = PROJECT_ROOT / "config" / "config.yaml"
DEFAULT_FILE = PROJECT_ROOT / "data" / "businesses.ndjson"
DEFAULT_INDEX = "businesses"
DEFAULT_BATCH_SIZE = 1000
ID_FIELD = "id"


def count_lines(file_path: Path) -> int:
    """Count lines in a file efficiently."""
    count = 0
    with open(file_path, "rb") as f:
        for _ in f:
            count += 1
    return count


def read_ndjson_batches(file_path: Path, batch_size: int) -> Iterator[tuple[list[dict], int]]:
    """
    Read an NDJSON file in batches.

    Yields:
        Tuple of (batch of documents, number of lines consumed by the batch)
    """
    batch = []
    lines = 0

    with open(file_path, "r") as f:
        for line in f:
            lines += 1
            line = line.strip()
            if not line:
                continue
            try:
                batch.append(json.loads(line))
            except json.JSONDecodeError:
                continue

            if len(batch) >= batch_size:
                yield batch, lines
                batch = []
                lines = 0

    if batch or lines:
        yield batch, lines


def bulk_index(
    es,
    index_name: str,
    documents: list[dict],
    dry_run: bool = False,
    verbose: bool = False
) -> tuple[int, int]:
    """
    Bulk index documents into Elasticsearch.

    Documents without an id are counted as errors.

    Returns:
        Tuple of (success_count, error_count)
    """
    missing_ids = sum(1 for doc in documents if not doc.get(ID_FIELD))
    if missing_ids and verbose:
        echo_warning(f"Skipping {missing_ids} documents without '{ID_FIELD}'")

    if dry_run:
        return len(documents) - missing_ids, missing_ids

    bulk_body = []
    for doc in documents:
        doc_id = doc.get(ID_FIELD)
        if not doc_id:
            continue
        bulk_body.append({"index": {"_index": index_name, "_id": doc_id}})
        bulk_body.append(doc)

    if not bulk_body:
        return 0, missing_ids

    try:
        response = es.bulk(operations=bulk_body, refresh=False)
    except Exception as e:
        echo_error(f"Bulk indexing error: {e}")
        return 0, len(documents)

    success_count = 0
    error_count = missing_ids

    for item in response.get("items", []):
        result = item.get("index", {})
        if result.get("error"):
            error_count += 1
            if verbose:
                echo_warning(f"Index error for {result.get('_id')}: {result['error']}")
        else:
            success_count += 1

    return success_count, error_count


def load_data_file(
    es,
    file_path: Path,
    index_name: str,
    batch_size: int,
    dry_run: bool = False,
    verbose: bool = False
) -> tuple[int, int]:
    """
    Load one NDJSON file into an index, with a progress bar.

    Returns:
        Tuple of (total_success, total_errors)
    """
    total_lines = count_lines(file_path)

    total_success = 0
    total_errors = 0

    with tqdm(total=total_lines, desc=f"Loading {index_name}", unit="doc") as pbar:
        for batch, lines in read_ndjson_batches(file_path, batch_size):
            success, errors = bulk_index(es, index_name, batch, dry_run=dry_run, verbose=verbose)
            total_success += success
            total_errors += errors
            pbar.update(lines)

    return total_success, total_errors


@click.command()
@click.option(
    "--file", "-f", "data_file",
    type=click.Path(path_type=Path),
    default=DEFAULT_FILE,
    help="Path to the businesses NDJSON file."
)
@click.option(
    "--batch-size",
    type=int,
    default=None,
    help=f"Number of documents per bulk request (default: {DEFAULT_BATCH_SIZE})."
)
@common_options
@elasticsearch_options
@env_option
def main(
    data_file: Path,
    batch_size: Optional[int],
    dry_run: bool,
    verbose: bool,
    config: str
):
    """
    Bulk load business records into Elasticsearch.

    Prerequisites: run admin.create_indices first.

    Examples:

        # Load data/businesses.ndjson
        python -m admin.load_data

        # Load another file with a larger batch size
        python -m admin.load_data -f data/sample.ndjson --batch-size 5000

        # Preview without loading
        python -m admin.load_data --dry-run
    """
    config_data = {}
    config_path = Path(config) if config else DEFAULT_CONFIG
    if config_path.exists():
        try:
            config_data = load_config_file(str(config_path))
            echo_verbose(f"Loaded config from {config_path}", verbose)
        except click.ClickException as e:
            echo_warning(f"Could not load config: {e.message}")

    if batch_size is None:
        batch_size = config_data.get("elasticsearch", {}).get("bulk_batch_size", DEFAULT_BATCH_SIZE)

    index_name = config_data.get("indices", {}).get("businesses", DEFAULT_INDEX)

    if not data_file.exists():
        echo_error(f"File not found: {data_file}")
        echo_info("Run admin.generate_sample_data first, or pass --file.")
        raise SystemExit(1)

    echo_info(f"Loading {data_file} into '{index_name}' (batch size {batch_size})")

    if dry_run:
        echo_info("[DRY RUN] No data will be loaded")

    try:
        es = get_es_client()
        es.info()
        echo_verbose("Connected to Elasticsearch", verbose)
    except Exception as e:
        echo_error(f"Failed to connect to Elasticsearch: {e}")
        raise SystemExit(1)

    if not es.indices.exists(index=index_name):
        echo_error(f"Index '{index_name}' does not exist.")
        echo_error("Run admin.create_indices first.")
        raise SystemExit(1)

    success, errors = load_data_file(
        es, data_file, index_name, batch_size,
        dry_run=dry_run, verbose=verbose
    )

    if not dry_run:
        # Refresh index to make documents searchable
        es.indices.refresh(index=index_name)

    echo_info(f"Total: {success:,} documents loaded, {errors} errors")

    if errors > 0:
        echo_warning(f"{errors} documents failed to load")
        raise SystemExit(1)

    echo_success("Data loading complete!")


if __name__ == "__main__":
    main()

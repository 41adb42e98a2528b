#!/usr/bin/env python3
"""
Theme Park Wait Time Reconciler - Reference Data Loader
Loads parks and the Queue-Times -> ThemeParks.wiki ride identity mapping
from a JSON file maintained outside the collector.

File format:
    {
      "parks": [
        {"queue_times_id": 6, "name": "Magic Kingdom",
         "themeparks_wiki_id": "75ea578a-adc8-4116-a54d-dccb60765ef9"}
      ],
      "ride_mappings": [
        {"queue_times_ride_id": "138",
         "themeparks_wiki_id": "b2260923-9315-40fd-9c6b-44dd811dbe64"}
      ]
    }

Usage:
    python -m scripts.load_reference_data --file reference.json [--init-schema] [--dry-run]

Options:
    --init-schema   Create missing tables before loading
    --dry-run       Validate the file and report counts without writing
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import db, get_db_session
from database.repositories.park_repository import ParkRepository
from database.repositories.ride_mapping_repository import RideMappingRepository
from utils.logger import logger


class ReferenceDataError(ValueError):
    """Raised when a reference data file is malformed."""
    pass


def _require(entry: Dict[str, Any], key: str, index: int, section: str) -> Any:
    value = entry.get(key) if isinstance(entry, dict) else None
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ReferenceDataError(f"{section}[{index}] is missing '{key}'")
    return value


def parse_reference_data(data: Any) -> Dict[str, List[Dict[str, Any]]]:
    """
    Validate decoded reference data.

    Args:
        data: Decoded JSON document

    Returns:
        Dictionary with 'parks' and 'ride_mappings' lists

    Raises:
        ReferenceDataError: If a section or required field is missing or invalid
    """
    if not isinstance(data, dict):
        raise ReferenceDataError("Reference data must be a JSON object")

    parks = data.get('parks') or []
    ride_mappings = data.get('ride_mappings') or []
    if not isinstance(parks, list) or not isinstance(ride_mappings, list):
        raise ReferenceDataError("'parks' and 'ride_mappings' must be lists")

    for index, park in enumerate(parks):
        queue_times_id = _require(park, 'queue_times_id', index, 'parks')
        if isinstance(queue_times_id, bool) or not isinstance(queue_times_id, int):
            raise ReferenceDataError(f"parks[{index}].queue_times_id must be an integer")
        _require(park, 'name', index, 'parks')

    mappings = []
    for index, mapping in enumerate(ride_mappings):
        mappings.append({
            'queue_times_ride_id': str(_require(mapping, 'queue_times_ride_id', index, 'ride_mappings')),
            'themeparks_wiki_id': str(_require(mapping, 'themeparks_wiki_id', index, 'ride_mappings')),
        })

    return {'parks': parks, 'ride_mappings': mappings}


def read_reference_file(path: str) -> Dict[str, List[Dict[str, Any]]]:
    """Read and validate a reference data file."""
    try:
        data = json.loads(Path(path).read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise ReferenceDataError(f"{path} is not valid JSON: {e}") from e
    return parse_reference_data(data)


class ReferenceDataLoader:
    """Upserts parks and ride mappings."""

    def __init__(self, session, dry_run: bool = False):
        self.dry_run = dry_run
        self.park_repo = ParkRepository(session)
        self.mapping_repo = RideMappingRepository(session)
        self.stats = {
            'parks_loaded': 0,
            'ride_mappings_loaded': 0,
        }

    def load(self, data: Dict[str, List[Dict[str, Any]]]) -> Dict[str, int]:
        """
        Store every park and ride mapping in validated reference data.

        Args:
            data: Output of parse_reference_data()

        Returns:
            Load statistics
        """
        for park in data['parks']:
            if not self.dry_run:
                self.park_repo.upsert(park)
            self.stats['parks_loaded'] += 1

        for mapping in data['ride_mappings']:
            if not self.dry_run:
                self.mapping_repo.upsert(mapping['queue_times_ride_id'], mapping['themeparks_wiki_id'])
            self.stats['ride_mappings_loaded'] += 1

        return dict(self.stats)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    parser = argparse.ArgumentParser(description='Load parks and ride identity mappings')
    parser.add_argument('--file', required=True, help='Reference data JSON file')
    parser.add_argument('--init-schema', action='store_true', help='Create missing tables first')
    parser.add_argument('--dry-run', action='store_true', help='Validate without writing')
    args = parser.parse_args(argv)

    try:
        data = read_reference_file(args.file)
    except (OSError, ReferenceDataError) as e:
        logger.error(f"Cannot load reference data: {e}")
        return 1

    if args.init_schema and not args.dry_run:
        created = db.create_schema()
        print(f"Created tables: {', '.join(created) if created else 'none'}")

    with get_db_session() as session:
        stats = ReferenceDataLoader(session, dry_run=args.dry_run).load(data)

    prefix = '[DRY RUN] ' if args.dry_run else ''
    print(f"{prefix}Parks loaded: {stats['parks_loaded']}")
    print(f"{prefix}Ride mappings loaded: {stats['ride_mappings_loaded']}")
    logger.info("Reference data loaded", extra={**stats, "dry_run": args.dry_run})
    return 0


if __name__ == '__main__':
    sys.exit(main())

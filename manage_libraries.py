#!/usr/bin/env python3
"""
Library Directory Management Utility

This script provides utilities to manage the library directory:
- List all libraries
- Import or refresh libraries from a JSON file
- Show directory statistics
"""

import asyncio
import json
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from pydantic import ValidationError

from utilities.logger import setup_logging
from utilities.config import config
from services.factory import build_directory
from services.models import LibraryRecord


async def list_all_libraries():
    """List all libraries in the directory."""
    print("\n" + "="*80)
    print("📋 ALL LIBRARIES")
    print("="*80)

    directory = build_directory(config)
    try:
        await directory.connect()
        libraries = await directory.get_all_libraries()

        if not libraries:
            print("❌ No libraries found in directory")
            return

        print(f"✅ Found {len(libraries)} libraries:")
        print()

        for library in libraries:
            print(f"{library.lib_code:>8}  {library.lib_name}")
            if library.address:
                print(f"          {library.address}")
            if library.operating_hours or library.closed_days:
                print(f"          Hours: {library.operating_hours or '-'}  Closed: {library.closed_days or '-'}")

    except Exception as e:
        print(f"❌ Error listing libraries: {e}")
    finally:
        await directory.disconnect()


def load_library_file(path: Path):
    """Read a JSON array of library records."""
    with open(path, 'r', encoding='utf-8') as f:
        payload = json.load(f)

    if not isinstance(payload, list):
        raise ValueError("Library file must contain a JSON array")

    records = []
    for position, item in enumerate(payload, 1):
        try:
            records.append(LibraryRecord(**item))
        except (TypeError, ValidationError) as e:
            raise ValueError(f"Invalid library record #{position}: {e}") from e
    return records


async def import_libraries(path: Path):
    """Insert or refresh libraries from a JSON file."""
    print(f"\n📥 IMPORTING LIBRARIES FROM {path}")
    print("="*80)

    try:
        records = load_library_file(path)
    except (OSError, ValueError) as e:
        print(f"❌ Could not read library file: {e}")
        sys.exit(1)

    directory = build_directory(config)
    try:
        await directory.connect()
        summary = await directory.upsert_libraries(records)
        print(f"✅ Processed {len(records)} records")
        print(f"   Inserted: {summary['inserted']}")
        print(f"   Updated:  {summary['updated']}")

    except Exception as e:
        print(f"❌ Error importing libraries: {e}")
    finally:
        await directory.disconnect()


async def show_statistics():
    """Show directory statistics."""
    print("\n📊 DIRECTORY STATISTICS")
    print("="*80)

    directory = build_directory(config)
    try:
        await directory.connect()
        total = await directory.get_libraries_count()
        libraries = await directory.get_all_libraries()

        with_geo = sum(1 for lib in libraries if lib.latitude and lib.longitude)
        with_hours = sum(1 for lib in libraries if lib.operating_hours)

        print(f"Total libraries:        {total}")
        print(f"With coordinates:       {with_geo}")
        print(f"With operating hours:   {with_hours}")

    except Exception as e:
        print(f"❌ Error getting statistics: {e}")
    finally:
        await directory.disconnect()


async def main():
    """Main function."""
    if len(sys.argv) < 2:
        print("Usage: python manage_libraries.py [list|import|stats] [file]")
        print()
        print("Commands:")
        print("  list     - List all libraries")
        print("  import   - Insert or refresh libraries from a JSON array file")
        print("  stats    - Show directory statistics")
        print()
        print("Examples:")
        print("  python manage_libraries.py list")
        print("  python manage_libraries.py import data/seoul_libraries.json")
        print("  python manage_libraries.py stats")
        sys.exit(1)

    command = sys.argv[1].lower()

    # Setup logging
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    if command == "list":
        await list_all_libraries()
    elif command == "import":
        if len(sys.argv) < 3:
            print("❌ Error: file required for import command")
            print("Usage: python manage_libraries.py import <file.json>")
            sys.exit(1)
        await import_libraries(Path(sys.argv[2]))
    elif command == "stats":
        await show_statistics()
    else:
        print(f"❌ Unknown command: {command}")
        print("Available commands: list, import, stats")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())

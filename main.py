"""
Command-line entry point for the Bookshore library finder.
Calculates the optimal library sets for 1-3 ISBNs and prints them as JSON.
"""

import asyncio
import json
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from services.exceptions import LibraryFinderError
from services.factory import build_directory, build_http_client, build_optimal_library_service
from utilities.config import config
from utilities.logger import setup_logging, get_logger


async def main():
    """Main function to run one calculation."""
    if len(sys.argv) < 2:
        print("Usage: python main.py ISBN [ISBN ...]")
        print()
        print("Examples:")
        print("  python main.py 9788936433529")
        print("  python main.py 9788936433529 9788937460777 89-364-3352-X")
        sys.exit(1)

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    logger = get_logger(__name__)
    isbns = sys.argv[1:]
    logger.info("Calculating optimal library sets", isbns=isbns)

    directory = build_directory(config)
    http_client = build_http_client(config)
    exit_code = 0
    try:
        await directory.connect()
        service = build_optimal_library_service(config, directory, http_client)

        result = await service.calculate_optimal_library_set(isbns)
        print(json.dumps(result.model_dump(by_alias=True), ensure_ascii=False, indent=2))

    except LibraryFinderError as e:
        logger.error("Calculation rejected", error=str(e))
        print(f"❌ {e}")
        exit_code = 1

    except Exception as e:
        logger.error("Fatal error occurred", error=str(e))
        exit_code = 1

    finally:
        await http_client.aclose()
        await directory.disconnect()

    sys.exit(exit_code)


if __name__ == "__main__":
    asyncio.run(main())

"""
Legacy Import Script - loads users.json and testResults.json into the store.

Reads the flat files written by the previous file-based deployment and
inserts them into the database configured by DATABASE_URL. Corrupt or
missing files are reported and treated as empty.

Usage:
    python import_legacy.py                 # Files in the current directory
    python import_legacy.py /srv/old-api    # Files in another directory
"""

import os
import sys

from examgate import config
from examgate.database import Store
from examgate.logging_config import setup_logging
from examgate.services.legacy_import import import_directory


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    directory = argv[0] if argv else os.getcwd()

    if not os.path.isdir(directory):
        print(f"Error: {directory} is not a directory")
        return 1

    setup_logging()
    store = Store(config.DATABASE_URL)
    store.create_tables()

    print(f"Importing legacy data from: {directory}")
    print(f"Target database: {config.DATABASE_URL}")
    try:
        summary = import_directory(store, directory)
    finally:
        store.dispose()

    print("=" * 60)
    print("IMPORT SUMMARY")
    print("=" * 60)
    print(f"  Users imported:        {summary['users']['imported']}")
    print(f"  Users skipped:         {summary['users']['skipped']}")
    print(f"  Test results imported: {summary['results']['imported']}")
    print(f"  Test results skipped:  {summary['results']['skipped']}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())

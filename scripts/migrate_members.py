"""
This script migrates groups from the embedded members map to the members
subcollection.

- Scans all 'groups' documents that still carry a 'members' map.
- For each member, it writes 'groups/{groupId}/members/{userId}' with the role
  derived from the group's 'ownerId'.
- Removes the 'members' map from the group document.
- Pass --dry-run to only report what would change.
"""

import logging
import sys
from pathlib import Path

# Add the project root to the Python path to allow importing 'cicero'
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from firebase_admin import firestore  # noqa: E402

from cicero.firebase import initialize_firebase  # noqa: E402
from cicero.group.migration import migrate_embedded_members  # noqa: E402


def main(argv=None):
    """Main migration logic."""
    argv = sys.argv[1:] if argv is None else argv
    dry_run = "--dry-run" in argv
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if not initialize_firebase():
        print("Could not find Firebase credentials in file or environment variable.")
        return 1
    db = firestore.client()

    migrated = migrate_embedded_members(db, dry_run=dry_run)
    if dry_run:
        print(f"\n{migrated} group(s) would be migrated.")
    else:
        print(f"\nMigration complete. {migrated} group(s) migrated.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

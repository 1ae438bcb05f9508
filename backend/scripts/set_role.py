"""CLI script to change the role of a registered user.

Registration always creates regular users; this is how the first
administrator is made.
Usage: python scripts/set_role.py EMAIL [--role admin|user|guest]
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `contest_tracker` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from contest_tracker import errors
from contest_tracker.config import Settings
from contest_tracker.database import SQLHandler
from contest_tracker.models import Role
from contest_tracker.repositories import UserRepository


def main(email: str, role: str = "admin", settings: Settings = None) -> int:
    """Set `role` on the user registered with `email`.

    Returns a process exit code; outcome is printed to stdout.
    """
    settings = settings or Settings()
    handler = SQLHandler(settings.DATABASE_URL, settings.DATABASE_MAX_IDLE_CONNS, settings.DATABASE_MAX_OPEN_CONNS)
    handler.create_tables()
    repo = UserRepository(handler)
    user = repo.find_by_email(email.lower())
    if user is None:
        print(f'No user registered with {email}')
        return 1
    user.role = int(Role[role.upper()])
    try:
        repo.store(user)
    except errors.DomainError as e:
        print(f'Could not update {email}: {e.message}')
        return 1
    print(f'{email} is now {role.lower()}')
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('email', help='Email of the registered user')
    parser.add_argument('--role', default='admin', choices=['admin', 'user', 'guest'])
    args = parser.parse_args()
    sys.exit(main(args.email, role=args.role))

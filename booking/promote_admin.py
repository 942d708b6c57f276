"""Grant the admin role to an existing account.

Usage:
    python -m booking.promote_admin someone@example.com
"""
import argparse
import sys

from booking.errors import ProfileNotFound
from booking.models.profile import ADMIN_ROLE
from booking.services.backend import BackendClient


def main(argv: list[str] | None = None, backend: BackendClient | None = None) -> int:
    parser = argparse.ArgumentParser(description='Grant the admin role to an existing account.')
    parser.add_argument('email')
    args = parser.parse_args(argv)

    backend = backend or BackendClient.from_url()
    user_id = backend.identity.get_user_id_by_email(args.email)
    if user_id is None:
        print(f'No account registered for {args.email}.', file=sys.stderr)
        return 1

    try:
        backend.profiles.set_role(user_id, ADMIN_ROLE)
    except ProfileNotFound:
        print(f'Account {args.email} has no profile.', file=sys.stderr)
        return 1

    print(f'{args.email} is now an admin.')
    return 0


if __name__ == '__main__':
    sys.exit(main())

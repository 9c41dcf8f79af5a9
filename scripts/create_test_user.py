import argparse
import os
import sys

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from wagerhub.config import settings
from wagerhub.core.database import Database
from wagerhub.core.identity import SignedTokenIdentityProvider
from wagerhub.core.ledger import LedgerService
from wagerhub.core.models import Identity


def create_test_user(subject_id: str, email: str, name: str):
    """Provision an account for a development identity and print a bearer token for it."""
    database = Database(settings.paths.get_db_path(), busy_timeout=settings.database.busy_timeout_seconds)
    ledger = LedgerService(database, starting_balance=settings.economy.starting_balance)
    provider = SignedTokenIdentityProvider.from_settings(settings.security)

    identity = Identity(subject_id=subject_id, email=email, name=name)
    account, created = ledger.open_account(identity)

    if created:
        print(f"Created account {account.id} for '{subject_id}' with balance {account.balance}.")
    else:
        print(f"Account for '{subject_id}' already exists (balance {account.balance}).")

    print(f"Bearer token (valid {settings.security.token_max_age_hours}h):")
    print(provider.issue(subject_id, email=email, name=name))
    database.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a development account and token")
    parser.add_argument("--subject", default="testuser")
    parser.add_argument("--email", default="testuser@example.com")
    parser.add_argument("--name", default="Test User")
    args = parser.parse_args()
    create_test_user(args.subject, args.email, args.name)

# manage_accounts.py
# Usage: python manage_accounts.py deactivate user@example.com
#        python manage_accounts.py activate user@example.com
#
# Accounts are never deleted; deactivation is a soft flag that blocks login.
import sys

from app import create_app
from models import Account


def set_active(email, active, app=None):
    app = app or create_app()
    with app.app_context():
        account = Account.find_by_email(email.strip().lower())
        if not account:
            raise RuntimeError(f"No account registered with email {email}")

        account.is_active = active
        account.save()
        state = "active" if active else "deactivated"
        app.logger.info(f"Account {account.id} marked {state} from the shell")
        print(f"Account (id={account.id}, email={account.email}) is now {state}.")


if __name__ == "__main__":
    if len(sys.argv) != 3 or sys.argv[1] not in ("activate", "deactivate"):
        print("Usage: python manage_accounts.py [activate|deactivate] EMAIL")
        sys.exit(1)
    set_active(sys.argv[2], sys.argv[1] == "activate")

# campusvote/create_admin.py
# Creates the schema (when not managed by `flask db upgrade`) and the default
# admin account. Run: python -m campusvote.create_admin

from campusvote import app, db
from campusvote.authentication.auth_gate import AuthGate


def main():
    with app.app_context():
        db.create_all()
        email = app.config['DEFAULT_ADMIN_EMAIL']
        created = AuthGate().ensure_default_admin(email, app.config['DEFAULT_ADMIN_PASSWORD'])
        if created:
            print(f"Default admin account created: {email}")
        else:
            print(f"Admin account already exists: {email}")


if __name__ == "__main__":
    main()

import getpass
from uuid import uuid4

from dotenv import load_dotenv
from passlib.hash import bcrypt

load_dotenv()

from vocabulary_center.app.identity import Identity, Role, normalize_email  # noqa: E402
from vocabulary_center.app.identity.repository import PostgresIdentityRepository  # noqa: E402
from vocabulary_center.db import ensure_schema, get_connection_factory  # noqa: E402


def main():
    connect = get_connection_factory()
    ensure_schema(connect)
    repository = PostgresIdentityRepository(connect)

    email = normalize_email(input("Admin email: "))
    existing = repository.get_by_email(email)
    if existing is not None:
        repository.set_role(existing.id, Role.ADMIN)
        print(f"Done. {email} is now an admin.")
        return

    name = input("Display name: ").strip() or "Admin User"
    password = getpass.getpass("New password: ")
    if len(password) < 6:
        print("Password must be at least 6 characters.")
        return
    repository.create(
        Identity(
            id=uuid4().hex,
            email=email,
            name=name,
            role=Role.ADMIN,
            password_hash=bcrypt.hash(password),
        )
    )
    print(f"Done. Created admin {email}.")


if __name__ == "__main__":
    main()

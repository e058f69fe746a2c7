# scripts/create_admin.py
"""
Create (or promote) an admin login.

    python -m tenantry.scripts.create_admin admin@example.com 'Str0ngPassword'
"""
import argparse
import asyncio
import logging
from datetime import datetime, timezone

from tenantry.core.errors import InvalidInput
from tenantry.models.user_model import User
from tenantry.utils.firebase import find_one, firestore_run, new_id
from tenantry.utils.security import hash_password, password_problems

logger = logging.getLogger("tenantry.scripts")


async def create_admin(db, email: str, password: str) -> dict:
    email = email.lower().strip()
    problems = password_problems(password)
    if problems:
        raise InvalidInput("; ".join(problems))

    now = datetime.now(timezone.utc)
    existing = await find_one(db, "users", ("email", "==", email))
    if existing:
        await firestore_run(
            db.collection("users").document(existing["_id"]).update,
            {"role": "admin", "password_hash": hash_password(password), "updated_at": now},
        )
        logger.info(f"Existing user {email} promoted to admin")
        return {**existing, "role": "admin"}

    user = User(_id=new_id(), email=email, password_hash=hash_password(password), role="admin",
                created_at=now, updated_at=now)
    data = user.model_dump(by_alias=True)
    await firestore_run(db.collection("users").document(user.id).set, data)
    logger.info(f"Admin user created: {email}")
    return data


def main(argv=None):
    from tenantry.core.firebase import get_db

    parser = argparse.ArgumentParser(description="Create a Tenantry admin user")
    parser.add_argument("email")
    parser.add_argument("password")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    user = asyncio.run(create_admin(get_db(), args.email, args.password))
    print(f"Admin ready: {user['email']} ({user['_id']})")


if __name__ == "__main__":
    main()

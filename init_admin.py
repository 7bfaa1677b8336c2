import os
import sys
from pathlib import Path

from dotenv import load_dotenv


# ======================================================
# ENV
# ======================================================

load_dotenv()

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin")

if not ADMIN_EMAIL:
    raise RuntimeError("ADMIN_EMAIL is not set")

if not ADMIN_PASSWORD:
    raise RuntimeError("ADMIN_PASSWORD is not set")

sys.path.append(str(Path(__file__).resolve().parent / "backend"))

from vetperto.database import SessionLocal, engine  # noqa: E402
from vetperto.models.tables import Base, Profiles  # noqa: E402
from vetperto.services.accounts import get_roles, grant_role, register  # noqa: E402
from vetperto.services.admin import log_action  # noqa: E402


# ======================================================
# MAIN LOGIC
# ======================================================

def main():
    # tables are created from the models; existing ones are left untouched
    Base.metadata.create_all(engine)

    db = SessionLocal()
    try:
        email = ADMIN_EMAIL.strip().lower()
        profile = (
            db.query(Profiles)
            .filter(Profiles.email == email, Profiles.user_type == "tutor")
            .first()
        )

        # ==================================================
        # CASE 1: NO ACCOUNT YET
        # ==================================================
        if not profile:
            profile = register(db, email, ADMIN_PASSWORD, ADMIN_NAME)
            grant_role(db, profile.id, "admin")
            log_action(db, profile.id, "bootstrap:admin_created", target_type="profile", target_id=profile.id)
            db.commit()
            print(f"[BOOTSTRAP] Admin created ({email})")

        # ==================================================
        # CASE 2: ACCOUNT EXISTS
        # ==================================================
        elif "admin" not in get_roles(db, profile.id):
            grant_role(db, profile.id, "admin")
            log_action(db, profile.id, "bootstrap:admin_role_granted", target_type="profile", target_id=profile.id)
            db.commit()
            print(f"[BOOTSTRAP] Admin role granted ({email})")

        else:
            print("[BOOTSTRAP] Admin already exists, nothing to do")
    finally:
        db.close()


# ======================================================
# ENTRYPOINT
# ======================================================

if __name__ == "__main__":
    main()

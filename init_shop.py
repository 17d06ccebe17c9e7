"""
Bootstrap a fresh shop database.

  - creates the tables
  - seeds the default weekly schedule if no rule exists yet
  - seeds a starter service catalog if the catalog is empty

Safe to run again: existing rules and services are left alone.
"""

from dotenv import load_dotenv

load_dotenv()

from barbershop.config import settings  # noqa: E402
from barbershop.database import SessionLocal, engine  # noqa: E402
from barbershop.models import AvailabilityRule, Base, Service  # noqa: E402
from barbershop.services import catalog, schedule  # noqa: E402


STARTER_SERVICES = (
    # name, price, minutes
    ("Haircut", 25.0, 30),
    ("Beard trim", 15.0, 20),
    ("Haircut + beard", 35.0, 50),
)


def main():
    Base.metadata.create_all(bind=engine)
    print(f"[BOOTSTRAP] Tables ready ({settings.resolved_database_url})")

    db = SessionLocal()
    try:
        if db.query(AvailabilityRule).count() == 0:
            rules = schedule.initialize_default_rules(db)
            print(f"[BOOTSTRAP] Default schedule created ({len(rules)} days)")
        else:
            print("[BOOTSTRAP] Schedule already configured")

        if db.query(Service).count() == 0:
            for name, price, minutes in STARTER_SERVICES:
                catalog.add_service(db, name, price, minutes)
            print(f"[BOOTSTRAP] Starter catalog created ({len(STARTER_SERVICES)} services)")
        else:
            print("[BOOTSTRAP] Service catalog already present")
    finally:
        db.close()

    if not settings.operator_token:
        print("[BOOTSTRAP] OPERATOR_TOKEN is not set: operator endpoints will refuse every call")


if __name__ == "__main__":
    main()

# Models package init
"""
RentCar Backend — ORM Models
==============================

Importing this package registers every table on Base.metadata, which is what
Alembic autogenerate, create_all_tables() and the test fixtures rely on.

Table Inventory:
    - users           → User     (customers and car owners)
    - cars            → Car      (listings)
    - rental_history  → Rental   (bookings)
    - reviews         → Review   (renter feedback)
    - rankings        → Ranking  (loyalty standing)
    - admins          → Admin    (staff accounts)

Relationships are plain foreign keys (ON DELETE CASCADE); services join
explicitly instead of using relationship() so nothing lazy-loads under asyncio.
"""

from app.models.admin import Admin
from app.models.car import Car
from app.models.ranking import Ranking
from app.models.rental import Rental
from app.models.review import Review
from app.models.user import User

__all__ = ["Admin", "Car", "Ranking", "Rental", "Review", "User"]

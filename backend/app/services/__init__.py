# Services package init
"""
RentCar Backend — Services Layer
==================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services accept an AsyncSession plus domain inputs, apply the marketplace
       rules, flush their changes, and return ORM objects. The commit happens
       once per request in get_db_session.

Service Inventory:
    - UserService:    accounts, login, profile updates, owner rating aggregate
    - CarService:     listings, browse/search/nearby, car status and aggregates
    - RentalService:  quotes, availability, booking lifecycle
    - ReviewService:  verified reviews, moderation, rating refreshes
    - RankingService: scores, tiers, streaks, leaderboards
    - AdminService:   staff accounts, oversight actions, dashboard statistics
    - scoring:        pure pricing/scoring functions shared by the above
    - persistence:    get-or-404 and flush-with-error-translation helpers

Each service module exposes a singleton (e.g. `car_service`) that routes import.
"""

# Routes package init
"""
RentCar Backend — API Routes Package
======================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource.

Route Inventory:
    - users.py:    /api/users     (register, login, profiles)
    - cars.py:     /api/cars      (listings, search, nearby, popular)
    - history.py:  /api/history   (bookings and their lifecycle)
    - reviews.py:  /api/reviews   (verified reviews, rating stats)
    - ranking.py:  /api/ranking   (loyalty rankings, leaderboards)
    - admin.py:    /api/admin     (staff accounts, oversight, statistics)
    - health.py:   /health        (service health check)

Design Principle:
    Routes are THIN. They read the request, resolve the caller through
    the security dependencies, call a service, and shape the response.
    Ownership and business rules live in the services.
"""

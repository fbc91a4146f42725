"""
RentCar Backend — Application Package
=======================================

What:  FastAPI backend for the RentCar marketplace: owners list cars,
       renters book them, reviews and rankings follow completed rentals.
Why:   Keeps the app factory, routes, services and models under one
       importable package so the ASGI server, Alembic and tests share them.
Who:   Imported by uvicorn (app.main:app), alembic/env.py and the test suite.
"""

__version__ = "1.0.0"

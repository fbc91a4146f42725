# Schemas package init
"""
RentCar Backend — Pydantic API Schemas
========================================

Schemas are separate from SQLAlchemy models because API contracts change
independently of the table layout, and because they decide exactly which
fields leave the server (password hashes never do).

One module per resource: user, car, rental, review, ranking, admin;
shared envelopes (errors, health) live in common.
"""

"""Pure domain logic for the reference-data access layer."""

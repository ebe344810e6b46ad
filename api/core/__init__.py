"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every feature uses: settings, logging,
the error taxonomy, DB wiring and predicate composition. Feature-specific SQL
and business rules live in the feature package (e.g. `experiences/`).
"""

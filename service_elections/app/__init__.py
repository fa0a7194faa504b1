"""
Elections Service package for the University Elections API.

This package manages elections, the candidates running in them, and the
students who vote. It provides:

- app.main: API surface for elections, candidates, students and health.
- app.models: Entity value objects, validated constructors, request/response models.
- app.cache: In-process key/value cache fronting election reads.
- app.services: Business rules and the caching policy for elections.
- app.persistence: In-memory and PostgreSQL repositories.

Guidelines:
- Services receive their collaborators from the composition root in main.py.
- Writes go to the repository first; caches are invalidated only afterwards.
- Validation failures must never touch the cache or the store.
"""

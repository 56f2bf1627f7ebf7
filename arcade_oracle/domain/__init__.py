"""Domain layer (pure logic).

- Keep game rules, distributions and payout math here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no Redis, no signing keys.
- Prefer deterministic functions (time/random passed in as arguments).
"""

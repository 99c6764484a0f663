"""
Shared anime tracker backend library code.

This package holds the release catalog, the AniList reconciliation engine and the
reminder dispatch engine. Entrypoints (CLI scripts, the job driver process) live in
`scripts/` and import from `anitrack_backend` rather than the other way around.
"""

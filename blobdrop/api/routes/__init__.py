"""
API route modules.

- pages: HTML upload form, upload handler and gallery
- files: JSON equivalents plus the feature flag snapshot
- health: Liveness and readiness checks
"""

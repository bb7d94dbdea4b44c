"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Blob storage (Azure Blob, Cloudflare R2, in-memory mock)
- secrets: Secret store (Azure Key Vault)
- appconfig: Feature flag source (Azure App Configuration)
"""

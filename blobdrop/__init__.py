"""
blobdrop - upload files to cloud blob storage.

This package contains the complete application:
- core: Framework-agnostic upload, credential and feature-flag logic
- infrastructure: External service integrations (blob store, secrets, config)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"

"""
Data layer for FairWatch.

Provides document stores, data models, and repository classes
for data access throughout the application.

Submodules:
- store: DocumentStore interface and in-memory implementation
- database: MongoDB connection management and store
- models: Pydantic data models/schemas
- repositories: Collection operations and queries
"""

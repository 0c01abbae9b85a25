"""
ReadLater Backend — Content Vault Package
==========================================

What: Per-user storage of captured article content, optionally encrypted at rest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │      StorageService (Content Store) │  ← namespaces, records, stats
    ├─────────────────────────────────────┤
    │   EncryptionService (Crypto Engine) │  ← PBKDF2 + AES-256-GCM
    └─────────────────────────────────────┘

    Article metadata, accounts and master keys live in other services; this
    package receives a user's master key per call and never stores it.
"""

__version__ = "1.0.0"

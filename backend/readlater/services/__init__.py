# Services package init
"""
ReadLater Backend — Services Layer
===================================

What:  The content vault core, independent of HTTP.
How:   Services are plain classes constructed once at startup (see main.py)
       and handed to routes through app.state. No module-level instances.

Service Inventory:
    - EncryptionService: key generation, PBKDF2 key derivation, AES-256-GCM
    - StorageService: per-user content records on disk, optional encryption,
      listing, stats and key rotation
"""
